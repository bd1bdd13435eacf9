"""Backend package for live team quiz rooms and practice sessions."""

__version__ = "0.3.0"

from .archive import ArchivalService
from .config import BackendSettings, load_settings
from .errors import QuizError
from .quiz_config import QuizConfigService
from .ranking import rank, rank_participants, rank_players
from .rooms import RoomLifecycle
from .scoring import score_answer
from .security import generate_token, hash_token, verify_token
from .sessions import SessionLifecycle
from .store import InMemoryStore, JsonFileStore, LockRegistry, PostgresStore, Store, create_store

__all__ = [
    "__version__",
    "ArchivalService",
    "BackendSettings",
    "create_store",
    "generate_token",
    "hash_token",
    "InMemoryStore",
    "JsonFileStore",
    "load_settings",
    "LockRegistry",
    "PostgresStore",
    "QuizConfigService",
    "QuizError",
    "rank",
    "rank_participants",
    "rank_players",
    "RoomLifecycle",
    "score_answer",
    "SessionLifecycle",
    "Store",
    "verify_token",
]
