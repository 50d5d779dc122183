"""
Alarms — durable task scheduling for an actor.

Many independent schedules share the actor's single wake deadline:

- schedule()/cancel() change the pending set, then _rearm() points the
  wake primitive at the earliest remaining `time`
- alarm() is the wake entry point: it drains every row that is due,
  calls each callback, deletes one-shot rows, advances cron rows, and
  re-arms
- initialize() creates/migrates the table and runs one catch-up alarm()
  for rows that came due while the actor was not loaded

Failure policy on fire: a callback that raises (or no longer exists) is
logged and its row is consumed anyway. One-shots are not retried and
cron rows still advance.
"""

from __future__ import annotations

import inspect
import json
import logging
import math
import time as _time
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable

from actorkit.core.config import AlarmsConfig
from actorkit.core.errors import CallbackNotFoundError, ScheduleError
from actorkit.host.alarm import AlarmClock, AlarmInfo
from actorkit.scheduler import cron as cronexpr
from actorkit.scheduler.callbacks import CallbackRegistry
from actorkit.scheduler.schedule import Schedule, ScheduleType, TimeRange, new_id
from actorkit.scheduler.store import ScheduleStore

if TYPE_CHECKING:
    from actorkit.actor import Actor

logger = logging.getLogger(__name__)

When = datetime | timedelta | int | float | str

# Largest value an SQLite INTEGER column holds
MAX_TIME = 2**63 - 1


class Alarms:
    """
    Scheduler bound to one owning actor.

    Usage:
        schedule = await actor.alarms.schedule(30, "remind", {"text": "hi"})
        schedule = await actor.alarms.schedule(datetime(2030, 1, 1), "remind")
        schedule = await actor.alarms.schedule("0 9 * * 1-5", "report")

        await actor.alarms.cancel(schedule.id)
        await actor.alarms.get(schedule.id)
        await actor.alarms.list(type="cron")
    """

    def __init__(
        self,
        store: ScheduleStore,
        alarm_clock: AlarmClock,
        callbacks: CallbackRegistry,
        owner: "Actor | None" = None,
        config: AlarmsConfig | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._store = store
        self._alarm_clock = alarm_clock
        self._owner = owner
        self._config = config or AlarmsConfig()
        self._clock = clock or _time.time
        self.callbacks = callbacks
        # Written only by _rearm
        self._deadline: int | None = None

    @property
    def store(self) -> ScheduleStore:
        return self._store

    @property
    def deadline(self) -> int | None:
        """The wake deadline last armed, or None."""
        return self._deadline

    def _identifier(self) -> str:
        if self._owner is not None and self._owner.name:
            return self._owner.name
        return self._config.default_identifier

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Create or upgrade the schedules table, then fire anything overdue."""
        await self._store.ensure_schema()
        await self.alarm()

    # ── Public API ───────────────────────────────────────────────────────────

    async def schedule(self, when: When, callback: str, payload: Any = None) -> Schedule:
        """
        Schedule `callback` to run later.

        Args:
            when: datetime → once at that time; number/timedelta → once after
                  that many seconds; str → cron expression, recurring.
            callback: Name of a registered callback on the owning actor.
            payload: JSON-serializable value passed to the callback.

        Raises:
            ScheduleError: bad `when`, bad payload, or non-string callback.
            CallbackNotFoundError: callback is not registered.
        """
        if not isinstance(callback, str):
            raise ScheduleError("Callback must be a string")
        if not self.callbacks.has(callback):
            raise CallbackNotFoundError(
                f"{callback!r} is not a registered callback", callback=callback
            )
        try:
            json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise ScheduleError(f"Payload is not JSON-serializable: {e}") from e

        now = self._clock()
        schedule = self._build(when, callback, payload, now)

        await self._store.upsert(schedule)
        logger.debug(
            f"Scheduled {schedule.type.value} {schedule.id} → {callback!r} at {schedule.time}"
        )
        await self._rearm()
        return schedule

    async def cancel(self, schedule_id: str) -> bool:
        """Remove a schedule. Returns whether it existed."""
        existed = await self._store.delete_by_id(schedule_id)
        if existed:
            logger.debug(f"Cancelled schedule {schedule_id}")
        await self._rearm()
        return existed

    async def get(self, schedule_id: str) -> Schedule | None:
        schedule = await self._store.query_by_id(schedule_id)
        if schedule is None:
            logger.debug(f"schedule {schedule_id} not found")
        return schedule

    async def list(
        self,
        id: str | None = None,
        type: ScheduleType | str | None = None,
        time_range: TimeRange | None = None,
    ) -> list[Schedule]:
        """Schedules matching every given filter, earliest first."""
        return await self._store.query_by_criteria(id=id, type=type, time_range=time_range)

    async def clear(self) -> int:
        """Remove every schedule and disarm. Returns the number removed."""
        removed = await self._store.delete_all()
        await self._rearm()
        return removed

    async def destroy(self) -> None:
        """Disarm, then drop the schedules table. initialize() recreates it."""
        self._deadline = None
        await self._alarm_clock.delete_alarm()
        await self._store.drop()

    # ── Wake handling ────────────────────────────────────────────────────────

    async def alarm(self, info: AlarmInfo | None = None) -> int:
        """
        Fire every due schedule, then re-arm.

        Returns the number of schedules processed.
        """
        now = self._clock()
        due = await self._store.query_due(now)
        if due:
            logger.debug(f"Alarm at {int(now)}: {len(due)} due (retry={info.retry_count if info else 0})")

        for schedule in due:
            await self._fire(schedule)
            if schedule.type is ScheduleType.CRON:
                next_time = self._next_cron_time(schedule, now)
                await self._store.update_time(schedule.id, next_time)
            else:
                await self._store.delete_by_id(schedule.id)

        await self._rearm()
        return len(due)

    async def _fire(self, schedule: Schedule) -> None:
        fn = self.callbacks.resolve(schedule.callback)
        if fn is None:
            logger.error(f"callback {schedule.callback!r} not found (schedule {schedule.id})")
            return

        if self._owner is not None:
            try:
                self._owner.set_name(schedule.identifier)
            except Exception as e:
                logger.error(f"error setting identifier for schedule {schedule.id}: {e}")

        try:
            result = fn(schedule.payload, schedule)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                f'error executing callback "{schedule.callback}" (schedule {schedule.id})'
            )

    def _next_cron_time(self, schedule: Schedule, now: float) -> int:
        # Measured from the later of wake time and the row's own time, so the
        # new value is always past both.
        after = max(float(now), float(schedule.time))
        try:
            return cronexpr.next_occurrence(schedule.cron or "", after)
        except ScheduleError:
            # Stored expression no longer parses; push it out a day so it
            # doesn't refire every wake.
            logger.error(f"schedule {schedule.id}: invalid cron {schedule.cron!r}, deferring 24h")
            return int(after) + 86400

    async def _rearm(self) -> None:
        """Point the wake primitive at the earliest pending schedule (or disarm)."""
        next_time = await self._store.query_next_deadline()
        if next_time is None:
            if self._deadline is not None:
                logger.debug("No schedules pending, clearing alarm")
            self._deadline = None
            await self._alarm_clock.delete_alarm()
            return
        self._deadline = next_time
        await self._alarm_clock.set_alarm(float(next_time))

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _build(self, when: When, callback: str, payload: Any, now: float) -> Schedule:
        base = {
            "id": new_id(self._config.id_length),
            "callback": callback,
            "payload": payload,
            "identifier": self._identifier(),
            "created_at": int(now),
        }

        if isinstance(when, datetime):
            return Schedule(type=ScheduleType.SCHEDULED, time=int(when.timestamp()), **base)

        if isinstance(when, timedelta):
            when = when.total_seconds()

        if isinstance(when, (int, float)) and not isinstance(when, bool):
            if isinstance(when, float) and not math.isfinite(when):
                raise ScheduleError(f"Delay must be a finite number, got {when}")
            if when < 0:
                raise ScheduleError(f"Delay must be non-negative, got {when}")
            fire_at = int(now + when) if when <= MAX_TIME - now else None
            if fire_at is None or fire_at > MAX_TIME:
                raise ScheduleError(f"Delay of {when} seconds is too large to store")
            return Schedule(
                type=ScheduleType.DELAYED,
                time=fire_at,
                delay_in_seconds=when,
                **base,
            )

        if isinstance(when, str):
            if not cronexpr.is_valid(when):
                raise ScheduleError(f"Invalid cron expression: {when!r}")
            return Schedule(
                type=ScheduleType.CRON,
                time=cronexpr.next_occurrence(when, now),
                cron=when,
                **base,
            )

        raise ScheduleError(f"Invalid schedule type: {type(when).__name__}")
