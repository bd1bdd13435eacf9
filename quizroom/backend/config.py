"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class BackendSettings:
    server_salt: str
    database_url: str | None
    data_dir: str | None
    host: str
    port: int
    log_level: str
    enforce_time_limits: bool


def load_settings() -> BackendSettings:
    port_raw = os.getenv("QUIZROOM_PORT", "8000")
    enforce_raw = os.getenv("QUIZROOM_ENFORCE_TIME_LIMITS", "false")
    return BackendSettings(
        server_salt=os.getenv("QUIZROOM_SERVER_SALT", "dev-salt"),
        database_url=os.getenv("QUIZROOM_DATABASE_URL"),
        data_dir=os.getenv("QUIZROOM_DATA_DIR"),
        host=os.getenv("QUIZROOM_HOST", "127.0.0.1"),
        port=int(port_raw),
        log_level=os.getenv("QUIZROOM_LOG_LEVEL", "INFO").upper(),
        enforce_time_limits=enforce_raw.strip().lower() in _TRUTHY,
    )
