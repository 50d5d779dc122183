"""
ActorState — the per-instance host context.

Bundles the durable store and the wake primitive, and serializes every
inbound operation (request, wake event) so that only one runs at a time.
Suspension points inside an operation do not let another one in.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from actorkit.core.config import ActorKitConfig
from actorkit.host.alarm import AlarmClock, AsyncioAlarmClock
from actorkit.storage.base import SqlStorage
from actorkit.storage.sqlite import SQLiteStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ActorState:
    """
    Host context for one actor instance.

    Usage:
        state = ActorState.open(config)
        async with state.turn():
            ...  # nothing else runs on this instance meanwhile
    """

    def __init__(self, storage: SqlStorage, alarm_clock: AlarmClock) -> None:
        self.storage = storage
        self.alarm_clock = alarm_clock
        self._lock = asyncio.Lock()

    @classmethod
    def open(cls, config: ActorKitConfig | None = None) -> ActorState:
        """Build a state backed by SQLite and a real asyncio timer."""
        config = config or ActorKitConfig()
        storage = SQLiteStorage(
            config.storage.resolved_path(),
            journal_mode=config.storage.journal_mode,
        )
        return cls(storage, AsyncioAlarmClock())

    @property
    def busy(self) -> bool:
        """Whether an operation currently holds the instance."""
        return self._lock.locked()

    @asynccontextmanager
    async def turn(self) -> AsyncIterator[None]:
        """Hold the instance for the duration of one inbound operation."""
        async with self._lock:
            yield

    async def block_concurrency_while(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run fn with no other operation admitted until it completes."""
        async with self.turn():
            return await fn()
