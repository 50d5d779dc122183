"""
TaskQueue — durable FIFO of callback invocations for an actor.

queue() persists (callback, payload) and then drains the queue oldest-first:
each item is dispatched to its callback by name and deleted. Items still
stored when the actor unloads are drained by initialize() on the next start.

Table: _actor_queues (name configurable)
    id          TEXT  PK
    payload     TEXT  (JSON)
    callback    TEXT
    created_at  INT

Same failure policy as Alarms: an item whose callback raises or no longer
exists is logged and deleted.
"""

from __future__ import annotations

import inspect
import json
import logging
import time as _time
from dataclasses import dataclass
from typing import Any, Callable

from actorkit.core.config import QueueConfig
from actorkit.core.errors import CallbackNotFoundError, ScheduleError
from actorkit.scheduler.callbacks import CallbackRegistry
from actorkit.scheduler.schedule import new_id
from actorkit.storage.base import SqlStorage
from actorkit.storage.migrations import Migration, MigrationRunner

logger = logging.getLogger(__name__)

MIGRATION_NAMESPACE = "queue"


@dataclass
class QueueItem:
    """One queued invocation."""

    id: str
    callback: str
    payload: Any = None
    created_at: int = 0

    @classmethod
    def from_row(cls, row: dict) -> QueueItem:
        raw = row.get("payload")
        try:
            payload = json.loads(raw) if raw is not None else None
        except (TypeError, ValueError):
            logger.warning(f"queue item {row['id']}: payload is not valid JSON, returning raw text")
            payload = raw
        return cls(
            id=row["id"],
            callback=row["callback"],
            payload=payload,
            created_at=int(row.get("created_at") or 0),
        )


def queue_migrations(table: str) -> list[Migration]:
    return [
        Migration(
            version=1,
            name="create queue table",
            statements=(
                f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id         TEXT PRIMARY KEY NOT NULL,
                    payload    TEXT,
                    callback   TEXT,
                    created_at INTEGER DEFAULT (CAST(strftime('%s', 'now') AS INTEGER))
                )
                """,
            ),
        ),
    ]


class TaskQueue:
    """
    Durable callback queue bound to one owning actor.

    Usage:
        item_id = await actor.tasks.queue("send_email", {"to": "a@b.c"})
        await actor.tasks.get(item_id)        # None once it has run
        await actor.tasks.dequeue_all_by_callback("send_email")
    """

    def __init__(
        self,
        storage: SqlStorage,
        callbacks: CallbackRegistry,
        config: QueueConfig | None = None,
        id_length: int = 9,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._storage = storage
        self._config = config or QueueConfig()
        self._table = self._config.table
        self._id_length = id_length
        self._clock = clock or _time.time
        self._flushing = False
        self.callbacks = callbacks

    @property
    def table(self) -> str:
        return self._table

    def _runner(self) -> MigrationRunner:
        return MigrationRunner(
            self._storage, f"{MIGRATION_NAMESPACE}:{self._table}", queue_migrations(self._table)
        )

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Create the queue table, then run anything left from a previous run."""
        await self._runner().run()
        await self.flush()

    async def destroy(self) -> None:
        """Drop the queue table and its migration history."""
        await self._storage.execute(f"DROP TABLE IF EXISTS {self._table}")
        await self._runner().forget()

    # ── Public API ───────────────────────────────────────────────────────────

    async def queue(self, callback: str, payload: Any = None) -> str:
        """
        Persist one invocation of `callback`, then drain the queue.

        Called from inside a queued callback, the new item is stored and
        picked up by the drain already running.

        Returns:
            The queued item's id.

        Raises:
            ScheduleError: non-string callback or non-JSON payload.
            CallbackNotFoundError: callback is not registered.
        """
        if not isinstance(callback, str):
            raise ScheduleError("Callback must be a string")
        if not self.callbacks.has(callback):
            raise CallbackNotFoundError(
                f"{callback!r} is not a registered callback", callback=callback
            )
        try:
            encoded = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise ScheduleError(f"Payload is not JSON-serializable: {e}") from e

        item_id = new_id(self._id_length)
        await self._storage.execute(
            f"INSERT INTO {self._table} (id, payload, callback, created_at) VALUES (?, ?, ?, ?)",
            (item_id, encoded, callback, int(self._clock())),
        )
        logger.debug(f"Queued {item_id} → {callback!r}")

        await self.flush()
        return item_id

    async def flush(self) -> int:
        """Run and delete queued items, oldest first, until none remain."""
        if self._flushing:
            return 0

        self._flushing = True
        processed = 0
        try:
            while True:
                rows = await self._storage.execute(
                    f"SELECT * FROM {self._table} ORDER BY created_at ASC, rowid ASC LIMIT 1"
                )
                if not rows:
                    break
                item = QueueItem.from_row(rows[0])
                await self._run(item)
                await self.dequeue(item.id)
                processed += 1
        finally:
            self._flushing = False
        return processed

    async def dequeue(self, item_id: str) -> bool:
        """Remove one item. Returns whether it existed."""
        count = await self._storage.execute_rowcount(
            f"DELETE FROM {self._table} WHERE id = ?", (item_id,)
        )
        return count > 0

    async def dequeue_all(self) -> int:
        return await self._storage.execute_rowcount(f"DELETE FROM {self._table}")

    async def dequeue_all_by_callback(self, callback: str) -> int:
        return await self._storage.execute_rowcount(
            f"DELETE FROM {self._table} WHERE callback = ?", (callback,)
        )

    async def get(self, item_id: str) -> QueueItem | None:
        rows = await self._storage.execute(
            f"SELECT * FROM {self._table} WHERE id = ?", (item_id,)
        )
        return QueueItem.from_row(rows[0]) if rows else None

    async def list(self) -> list[QueueItem]:
        rows = await self._storage.execute(
            f"SELECT * FROM {self._table} ORDER BY created_at ASC, rowid ASC"
        )
        return [QueueItem.from_row(r) for r in rows]

    # ── Helpers ──────────────────────────────────────────────────────────────

    async def _run(self, item: QueueItem) -> None:
        fn = self.callbacks.resolve(item.callback)
        if fn is None:
            logger.error(f"callback {item.callback!r} not found (queue item {item.id})")
            return
        try:
            result = fn(item.payload, item)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f'error executing callback "{item.callback}" (queue item {item.id})')
