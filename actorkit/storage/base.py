"""
SQL Storage interface.

The durable relational store bound to one actor instance.
Statements are executed with positional parameters; rows come back
as plain dicts keyed by column name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence


class SqlStorage(ABC):
    """
    Abstract base class for SQL storage backends.

    Implementations:
        SQLiteStorage — aiosqlite, file-based or ":memory:"
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Open the underlying connection. Safe to call more than once."""
        ...

    @abstractmethod
    async def execute(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run one statement and return its rows (empty for writes)."""
        ...

    @abstractmethod
    async def execute_rowcount(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run one write statement and return the number of affected rows."""
        ...

    @abstractmethod
    async def execute_script(self, sql: str) -> None:
        """Run several semicolon-separated statements."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the storage backend."""
        ...
