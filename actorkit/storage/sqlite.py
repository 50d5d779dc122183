"""
SQLite storage backend.

Uses aiosqlite for async SQLite access.
WAL mode enabled for file databases.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

import aiosqlite

from actorkit.core.errors import StorageError
from actorkit.storage.base import SqlStorage

logger = logging.getLogger(__name__)


class SQLiteStorage(SqlStorage):
    """
    SQLite-backed statement store.

    Usage:
        storage = SQLiteStorage("~/.actorkit/actor.db")
        await storage.initialize()

        await storage.execute("CREATE TABLE IF NOT EXISTS t (k TEXT, v TEXT)")
        await storage.execute("INSERT INTO t VALUES (?, ?)", ("a", "1"))
        rows = await storage.execute("SELECT * FROM t")  # [{"k": "a", "v": "1"}]
    """

    def __init__(self, db_path: str | Path, journal_mode: str = "WAL") -> None:
        if str(db_path) == ":memory:":
            self._db_path: Path | None = None
        else:
            self._db_path = Path(db_path).expanduser()
        self._journal_mode = journal_mode
        self._db: aiosqlite.Connection | None = None

    @property
    def path(self) -> str:
        return str(self._db_path) if self._db_path else ":memory:"

    async def initialize(self) -> None:
        """Open the database connection."""
        if self._db is not None:
            return

        try:
            if self._db_path is not None:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(self.path)
            self._db.row_factory = aiosqlite.Row

            if self._db_path is not None:
                await self._db.execute(f"PRAGMA journal_mode={self._journal_mode}")
                await self._db.execute("PRAGMA synchronous=NORMAL")
            await self._db.commit()
            logger.debug(f"SQLite storage initialized at {self.path}")

        except Exception as e:
            raise StorageError(f"Failed to initialize SQLite at {self.path}: {e}") from e

    def _ensure_db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StorageError("Storage not initialized")
        return self._db

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        db = self._ensure_db()
        try:
            async with db.execute(sql, tuple(params)) as cursor:
                rows = await cursor.fetchall()
            await db.commit()
            return [dict(row) for row in rows]
        except Exception as e:
            logger.error(f"failed to execute sql query: {sql.strip()}")
            raise StorageError(f"SQL execution failed: {e}", {"sql": sql}) from e

    async def execute_rowcount(self, sql: str, params: Sequence[Any] = ()) -> int:
        db = self._ensure_db()
        try:
            cursor = await db.execute(sql, tuple(params))
            count = cursor.rowcount
            await cursor.close()
            await db.commit()
            return count
        except Exception as e:
            logger.error(f"failed to execute sql query: {sql.strip()}")
            raise StorageError(f"SQL execution failed: {e}", {"sql": sql}) from e

    async def execute_script(self, sql: str) -> None:
        db = self._ensure_db()
        try:
            await db.executescript(sql)
            await db.commit()
        except Exception as e:
            raise StorageError(f"SQL script failed: {e}", {"sql": sql}) from e

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None
