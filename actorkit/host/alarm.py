"""
Wake primitive — one pending deadline per actor instance.

set_alarm() overwrites whatever was armed before; when the deadline
passes the handler is invoked exactly once and the deadline is cleared.

Implementations:
    AsyncioAlarmClock — real timer on the running event loop
    ManualAlarmClock  — records the deadline only, caller fires it
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlarmInfo:
    """Details handed to the wake entry point."""

    retry_count: int = 0
    is_retry: bool = False


AlarmHandler = Callable[[AlarmInfo], Awaitable[None]]


class AlarmClock(ABC):
    """Single-deadline timer. Deadlines are unix timestamps in seconds."""

    @abstractmethod
    async def set_alarm(self, deadline: float) -> None:
        """Arm (or re-arm) the wake deadline."""
        ...

    @abstractmethod
    async def delete_alarm(self) -> None:
        """Disarm. No-op when nothing is armed."""
        ...

    @abstractmethod
    async def get_alarm(self) -> float | None:
        """The pending deadline, or None."""
        ...


class AsyncioAlarmClock(AlarmClock):
    """
    Timer backed by loop.call_later.

    Usage:
        clock = AsyncioAlarmClock()
        clock.bind(actor.alarm)
        await clock.set_alarm(time.time() + 30)

    Deadlines already in the past fire on the next loop iteration.
    """

    def __init__(self, handler: AlarmHandler | None = None) -> None:
        self._handler = handler
        self._deadline: float | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None

    def bind(self, handler: AlarmHandler) -> None:
        self._handler = handler

    async def set_alarm(self, deadline: float) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._deadline = deadline
        delay = max(0.0, deadline - time.time())
        self._timer = loop.call_later(delay, self._fire)
        logger.debug(f"Alarm armed for {deadline} (in {delay:.1f}s)")

    async def delete_alarm(self) -> None:
        self._cancel_timer()
        self._deadline = None

    async def get_alarm(self) -> float | None:
        return self._deadline

    async def close(self) -> None:
        """Disarm and wait for an in-flight handler to finish."""
        await self.delete_alarm()
        if self._task and not self._task.done():
            await asyncio.gather(self._task, return_exceptions=True)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        self._deadline = None
        if self._handler is None:
            logger.warning("Alarm fired with no handler bound")
            return
        self._task = asyncio.ensure_future(self._run(self._handler))

    async def _run(self, handler: AlarmHandler) -> None:
        try:
            await handler(AlarmInfo())
        except Exception:
            logger.exception("Alarm handler failed")


class ManualAlarmClock(AlarmClock):
    """
    Deadline recorder for tests and embedders that drive wakes themselves.

    Usage:
        clock = ManualAlarmClock()
        ...
        if clock.deadline is not None and clock.deadline <= now:
            await actor.alarm()
    """

    def __init__(self) -> None:
        self.deadline: float | None = None
        self.history: list[float | None] = []

    async def set_alarm(self, deadline: float) -> None:
        self.deadline = deadline
        self.history.append(deadline)

    async def delete_alarm(self) -> None:
        if self.deadline is not None:
            self.history.append(None)
        self.deadline = None

    async def get_alarm(self) -> float | None:
        return self.deadline
