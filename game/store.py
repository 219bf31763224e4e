"""Durable store for game snapshots and session logs (SQLite).

Snapshots = full records keyed by id, replaced wholesale on every write
Logs = append-only records such as finished review sessions
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

logger = logging.getLogger(__name__)


class GameError(Exception):
    """Base class for engine failures that reach the caller."""


class StorageError(GameError):
    """Raised when a durable read or write fails.

    In-memory state may already hold the change; the caller decides
    whether to retry the write or discard the session.
    """

    def __init__(self, message: str, operation: str = ""):
        self.operation = operation
        super().__init__(message)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


_SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    id TEXT PRIMARY KEY,
    payload TEXT,             -- JSON blob, the whole record
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS session_log (
    id TEXT PRIMARY KEY,
    kind TEXT,                -- "review_session" | ...
    payload TEXT,             -- JSON blob
    created_at TEXT
);
"""


class GameDB:
    """Key-value snapshots plus an append-only log."""

    def __init__(self, db_path: str | Path):
        self._path = Path(db_path)
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(str(self._path))
            await self._db.executescript(_SCHEMA)
            await self._db.commit()
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Cannot open game DB at {self._path}: {exc}", "open") from exc
        logger.debug("Game DB ready at %s", self._path)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> GameDB:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def _conn(self, operation: str) -> aiosqlite.Connection:
        if self._db is None:
            raise StorageError("Game DB is not open", operation)
        return self._db

    # ── Snapshots ───────────────────────────────────────────────

    async def get(self, key: str) -> dict | None:
        db = self._conn("get")
        try:
            cursor = await db.execute("SELECT payload FROM snapshots WHERE id = ? LIMIT 1", (key,))
            row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read snapshot {key!r}: {exc}", "get") from exc
        if row is None:
            return None
        return json.loads(row[0])

    async def put(self, record: dict) -> None:
        """Replace the whole record stored under ``record["id"]``."""
        key = record.get("id")
        if not key:
            raise ValueError("record needs an 'id'")
        db = self._conn("put")
        try:
            await db.execute(
                "INSERT INTO snapshots (id, payload, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET payload=excluded.payload, updated_at=excluded.updated_at",
                (key, json.dumps(record), _now_iso()),
            )
            await db.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to write snapshot {key!r}: {exc}", "put") from exc
        logger.debug("Saved snapshot %s", key)

    # ── Logs ────────────────────────────────────────────────────

    async def add(self, kind: str, record: dict) -> str:
        row_id = str(record.get("id") or uuid.uuid4())
        db = self._conn("add")
        try:
            await db.execute(
                "INSERT INTO session_log (id, kind, payload, created_at) VALUES (?, ?, ?, ?)",
                (row_id, kind, json.dumps(record), _now_iso()),
            )
            await db.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to append {kind} record: {exc}", "add") from exc
        return row_id

    async def recent_logs(self, kind: str = "", limit: int = 10) -> list[dict]:
        query = "SELECT id, kind, payload, created_at FROM session_log"
        params: list[Any] = []
        if kind:
            query += " WHERE kind = ?"
            params.append(kind)
        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        db = self._conn("recent_logs")
        try:
            cursor = await db.execute(query, tuple(params))
            rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read {kind or 'all'} logs: {exc}", "recent_logs") from exc
        return [
            {"id": row[0], "kind": row[1], "payload": json.loads(row[2]), "created_at": row[3]}
            for row in rows
        ]
