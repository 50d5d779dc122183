"""Tests for actorkit/actor.py"""
from __future__ import annotations

import asyncio

import pytest

from actorkit.actor import Actor
from actorkit.core.config import ActorKitConfig
from actorkit.host.alarm import AsyncioAlarmClock, ManualAlarmClock
from actorkit.host.state import ActorState
from actorkit.scheduler.callbacks import callback
from actorkit.storage.migrations import Migration
from actorkit.storage.sqlite import SQLiteStorage

from conftest import T0, FakeClock, Recorder


class Notes(Actor):
    migrations = [
        Migration(1, "notes table", ("CREATE TABLE notes (id TEXT PRIMARY KEY, body TEXT)",)),
    ]

    @callback
    async def save_note(self, payload, schedule):
        await self.sql("INSERT INTO notes (id, body) VALUES (?, ?)", schedule.id, payload)


@pytest.mark.asyncio
class TestLifecycle:
    async def test_create_bootstraps(self, actor):
        assert actor.started is True
        assert actor.name == "tester"
        assert await actor.alarms.list() == []

    async def test_start_is_idempotent(self, actor):
        await actor.start()
        await actor.start()
        assert actor.started is True

    async def test_catch_up_dispatch_on_start(self, db_path):
        clock = FakeClock()
        first = await Recorder.create(
            ActorState(SQLiteStorage(db_path), ManualAlarmClock()), name="n", clock=clock
        )
        due = await first.alarms.schedule(5, "tick", "overdue")
        later = await first.alarms.schedule(500, "tick", "later")
        await first.state.storage.close()

        # actor unloaded while the first schedule came due
        clock.advance(60)
        alarm_clock = ManualAlarmClock()
        second = await Recorder.create(
            ActorState(SQLiteStorage(db_path), alarm_clock), name="n", clock=clock
        )

        assert second.calls == [("tick", "overdue", due.id)]
        assert await second.alarms.get(due.id) is None
        assert await second.alarms.get(later.id) is not None
        assert alarm_clock.deadline == T0 + 500
        await second.state.storage.close()

    async def test_entry_point_before_start_bootstraps_first(self, state, clock):
        recorder = Recorder(state, name="lazy", clock=clock)
        assert recorder.started is False

        async def request():
            assert recorder.started is True
            return await recorder.alarms.schedule(5, "tick")

        s = await recorder.dispatch(request)
        assert s.identifier == "lazy"
        await recorder.state.storage.close()

    async def test_requests_wait_for_bootstrap(self, state, clock):
        recorder = Recorder(state, name="x", clock=clock)
        order: list[str] = []

        original = recorder.alarms.initialize

        async def slow_initialize():
            order.append("init:start")
            await asyncio.sleep(0.05)
            await original()
            order.append("init:end")

        recorder.alarms.initialize = slow_initialize  # type: ignore[method-assign]

        async def request():
            order.append("request")

        await asyncio.gather(recorder.start(), recorder.dispatch(request))
        assert order == ["init:start", "init:end", "request"]
        await recorder.state.storage.close()

    async def test_destroy_removes_everything(self, actor, alarm_clock, db_path):
        await actor.alarms.schedule(5, "tick")
        await actor.alarms.schedule("* * * * *", "tick")
        await actor.destroy()

        assert alarm_clock.deadline is None
        assert actor.alarms.deadline is None
        assert actor.started is False

        check = SQLiteStorage(db_path)
        await check.initialize()
        tables = await check.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name IN ('_actor_alarms', '_actor_queues')"
        )
        assert tables == []
        assert await check.execute(
            "SELECT * FROM _actorkit_migrations "
            "WHERE namespace IN ('alarms:_actor_alarms', 'queue:_actor_queues')"
        ) == []
        await check.close()

    async def test_start_after_destroy_recreates_tables(self, actor, alarm_clock):
        await actor.alarms.schedule(5, "tick")
        await actor.destroy()

        await actor.start()
        assert actor.started is True
        assert await actor.alarms.list() == []
        s = await actor.alarms.schedule(30, "tick")
        assert alarm_clock.deadline == s.time
        item_id = await actor.tasks.queue("tick", "again")
        assert actor.calls == [("tick", "again", item_id)]


@pytest.mark.asyncio
class TestEntryPoints:
    async def test_alarm_entry_point_fires_due(self, actor, clock):
        s = await actor.alarms.schedule(10, "tick")
        clock.advance(10)
        await actor.alarm()
        assert actor.calls == [("tick", None, s.id)]

    async def test_dispatch_returns_handler_result(self, actor):
        async def handler(x, y=0):
            return x + y

        assert await actor.dispatch(handler, 2, y=3) == 5

    async def test_dispatch_serializes_with_wake(self, actor, clock):
        events: list[str] = []

        async def request():
            events.append("request:start")
            await asyncio.sleep(0.02)
            events.append("request:end")

        await actor.alarms.schedule(0, "tick")
        original = actor.alarms.alarm

        async def traced_alarm(info=None):
            events.append("alarm")
            return await original(info)

        actor.alarms.alarm = traced_alarm  # type: ignore[method-assign]
        await asyncio.gather(actor.dispatch(request), actor.alarm())
        assert events == ["request:start", "request:end", "alarm"]


@pytest.mark.asyncio
class TestActorStorage:
    async def test_actor_migrations_and_sql(self, db_path):
        clock = FakeClock()
        notes = await Notes.create(
            ActorState(SQLiteStorage(db_path), ManualAlarmClock()), clock=clock
        )
        s = await notes.alarms.schedule(1, "save_note", "buy milk")
        clock.advance(1)
        await notes.alarm()

        assert await notes.sql("SELECT id, body FROM notes") == [{"id": s.id, "body": "buy milk"}]
        await notes.state.storage.close()

    async def test_default_identifier_from_config(self, db_path):
        config = ActorKitConfig(alarms={"default_identifier": "main"})
        notes = await Notes.create(
            ActorState(SQLiteStorage(db_path), ManualAlarmClock()), config=config
        )
        s = await notes.alarms.schedule(60, "save_note", "x")
        assert s.identifier == "main"
        await notes.state.storage.close()


@pytest.mark.asyncio
class TestRealTimer:
    async def test_asyncio_clock_drives_wake(self, tmp_path):
        state = ActorState(SQLiteStorage(tmp_path / "live.db"), AsyncioAlarmClock())
        recorder = await Recorder.create(state, name="live")

        s = await recorder.dispatch(recorder.alarms.schedule, 0, "tick", "now")

        for _ in range(100):
            if recorder.calls:
                break
            await asyncio.sleep(0.02)

        assert recorder.calls == [("tick", "now", s.id)]
        await asyncio.sleep(0.05)
        assert await recorder.alarms.list() == []
        await state.alarm_clock.close()
        await state.storage.close()
