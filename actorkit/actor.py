"""
Actor — base class for a stateful unit with durable scheduling.

An actor owns one ActorState (durable store + wake primitive), one Alarms
scheduler and one TaskQueue. The host calls the entry points (alarm,
dispatch); each runs as one serialized turn, after bootstrap has finished.

    class Reminders(Actor):
        migrations = [
            Migration(1, "notes", ("CREATE TABLE notes (id TEXT, body TEXT)",)),
        ]

        @callback
        async def remind(self, payload, schedule):
            await self.sql("INSERT INTO notes VALUES (?, ?)", schedule.id, payload)

    actor = await Reminders.create(ActorState.open(config), name="alice")
    await actor.dispatch(actor.alarms.schedule, 60, "remind", "stretch")
    await actor.dispatch(actor.tasks.queue, "remind", "now")
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, ClassVar, TypeVar

from actorkit.core.config import ActorKitConfig
from actorkit.host.alarm import AlarmInfo, AsyncioAlarmClock
from actorkit.host.state import ActorState
from actorkit.scheduler.alarms import Alarms
from actorkit.scheduler.callbacks import CallbackRegistry
from actorkit.scheduler.queue import TaskQueue
from actorkit.scheduler.store import ScheduleStore
from actorkit.storage.migrations import Migration, MigrationRunner

logger = logging.getLogger(__name__)

T = TypeVar("T")
A = TypeVar("A", bound="Actor")

ACTOR_MIGRATION_NAMESPACE = "actor"


class Actor:
    """
    Base actor.

    Subclasses mark schedulable methods with @callback and may list their
    own table migrations in `migrations`.
    """

    migrations: ClassVar[list[Migration]] = []

    def __init__(
        self,
        state: ActorState,
        name: str | None = None,
        config: ActorKitConfig | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.state = state
        self.config = config or ActorKitConfig()
        self._name = name
        self._started = False

        store = ScheduleStore(
            state.storage,
            table=self.config.alarms.table,
            default_identifier=self.config.alarms.default_identifier,
        )
        callbacks = CallbackRegistry.for_owner(self)
        self.alarms = Alarms(
            store,
            state.alarm_clock,
            callbacks,
            owner=self,
            config=self.config.alarms,
            clock=clock,
        )
        self.tasks = TaskQueue(
            state.storage,
            callbacks,
            config=self.config.queue,
            id_length=self.config.alarms.id_length,
            clock=clock,
        )

        if isinstance(state.alarm_clock, AsyncioAlarmClock):
            state.alarm_clock.bind(self.alarm)

    @classmethod
    async def create(cls: type[A], state: ActorState, *args: Any, **kwargs: Any) -> A:
        """Construct and bootstrap in one step."""
        actor = cls(state, *args, **kwargs)
        await actor.start()
        return actor

    # ── Identity ─────────────────────────────────────────────────────────────

    @property
    def name(self) -> str | None:
        return self._name

    def set_name(self, name: str) -> None:
        """Set the logical name recorded on new schedules."""
        self._name = name

    # ── Lifecycle ────────────────────────────────────────────────────────────

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """
        Bootstrap the instance: open storage, apply migrations, create the
        queue and schedules tables, drain leftover queue items and run the
        catch-up alarm. No other operation is admitted until this finishes.
        Safe to call repeatedly.
        """
        if self._started:
            return
        await self.state.block_concurrency_while(self._bootstrap)

    async def _bootstrap(self) -> None:
        if self._started:
            return
        await self.state.storage.initialize()
        if self.migrations:
            await MigrationRunner(
                self.state.storage, ACTOR_MIGRATION_NAMESPACE, list(self.migrations)
            ).run()
        # queue first: catch-up alarm callbacks may queue work
        await self.tasks.initialize()
        await self.alarms.initialize()
        self._started = True
        logger.debug(f"Actor {type(self).__name__}({self._name!r}) started")

    async def destroy(self) -> None:
        """
        Disarm the wake primitive, drop the schedules and queue tables with
        their migration history, and close storage. A later start() recreates
        both tables empty.
        """
        await self.start()
        async with self.state.turn():
            await self.alarms.destroy()
            await self.tasks.destroy()
            await self.state.storage.close()
            self._started = False
            logger.debug(f"Actor {type(self).__name__}({self._name!r}) destroyed")

    # ── Entry points ─────────────────────────────────────────────────────────

    async def alarm(self, info: AlarmInfo | None = None) -> None:
        """Wake entry point, called by the host when the deadline passes."""
        await self.start()
        async with self.state.turn():
            await self.alarms.alarm(info)

    async def dispatch(self, handler: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run one inbound operation as a serialized turn."""
        await self.start()
        async with self.state.turn():
            return await handler(*args, **kwargs)

    # ── Storage helpers ──────────────────────────────────────────────────────

    async def sql(self, query: str, *params: Any) -> list[dict[str, Any]]:
        """Run a parameterized statement against this actor's store."""
        return await self.state.storage.execute(query, params)
