"""Persistence interfaces and implementations for quiz collections.

A store maps a collection key to an ordered list of records. There is no
partial update: callers read a whole collection, change it in memory and
write it back. Serializing those read-modify-write cycles is the job of the
lifecycles, through ``LockRegistry``.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
import threading
from typing import Any, Protocol
import weakref

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class Store(Protocol):
    def read(self, key: str) -> list[Record]:
        """Return the whole collection, or an empty list when it was never written."""

    def write(self, key: str, records: list[Record]) -> None:
        """Replace the whole collection."""


@dataclass
class InMemoryStore:
    def __post_init__(self) -> None:
        self._collections: dict[str, list[Record]] = {}
        self._guard = threading.Lock()

    def read(self, key: str) -> list[Record]:
        with self._guard:
            return copy.deepcopy(self._collections.get(key, []))

    def write(self, key: str, records: list[Record]) -> None:
        with self._guard:
            self._collections[key] = copy.deepcopy(list(records))


@dataclass
class JsonFileStore:
    data_dir: str

    def _path(self, key: str) -> Path:
        return Path(self.data_dir) / f"{key}.json"

    def read(self, key: str) -> list[Record]:
        path = self._path(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("collection %s not found at %s, starting empty", key, path)
            return []
        records = json.loads(raw)
        if not isinstance(records, list):
            raise ValueError(f"collection file {path} does not hold a list")
        return records

    def write(self, key: str, records: list[Record]) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(list(records), handle, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
        _fsync_dir(path.parent)


def _fsync_dir(directory: Path) -> None:
    # the rename is only durable once the directory entry is flushed
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


@dataclass
class PostgresStore:
    database_url: str

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def read(self, key: str) -> list[Record]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT records
                    FROM quiz_collections
                    WHERE key = %s
                    """,
                    (key,),
                )
                row = cur.fetchone()

        if row is None:
            return []
        (records,) = row
        return records if isinstance(records, list) else json.loads(records)

    def write(self, key: str, records: list[Record]) -> None:
        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO quiz_collections (key, records, updated_at)
                    VALUES (%s, %s::jsonb, %s)
                    ON CONFLICT (key)
                    DO UPDATE SET records = EXCLUDED.records, updated_at = EXCLUDED.updated_at
                    """,
                    (key, json.dumps(list(records)), now),
                )
            conn.commit()


class LockRegistry:
    """Hands out one lock per aggregate name, created on first use.

    Locks are held weakly: while any caller holds or waits on a lock every
    caller gets that same object, and once nobody references it the entry
    goes away. Finished and deleted rooms therefore leave nothing behind.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._guard = threading.Lock()

    def lock(self, name: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = threading.Lock()
                self._locks[name] = lock
            return lock

    def __contains__(self, name: str) -> bool:
        with self._guard:
            return name in self._locks

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


def create_store(database_url: str | None, data_dir: str | None = None) -> Store:
    if database_url:
        return PostgresStore(database_url=database_url)
    if data_dir:
        return JsonFileStore(data_dir=data_dir)
    return InMemoryStore()
