"""Room host capability tokens.

The raw token is handed to whoever creates a room and is never stored; rooms
keep only ``hash_token(token, server_salt)``. Host-only operations present
the raw token again and are checked with ``verify_token``.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets


TOKEN_BYTES = 24


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str, server_salt: str) -> str:
    payload = f"{token}{server_salt}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def verify_token(raw_token: str | None, expected_hash: str, server_salt: str) -> bool:
    """True when ``raw_token`` is the host token behind ``expected_hash``.

    A missing token or a room without a stored hash never verifies.
    """
    if not raw_token or not expected_hash:
        return False
    return hmac.compare_digest(hash_token(raw_token, server_salt), expected_hash)
