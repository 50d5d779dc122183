"""Shared test fixtures for actorkit."""

import pytest
import pytest_asyncio

from actorkit.actor import Actor
from actorkit.core.config import ActorKitConfig
from actorkit.host.alarm import ManualAlarmClock
from actorkit.host.state import ActorState
from actorkit.scheduler.callbacks import callback
from actorkit.storage.sqlite import SQLiteStorage

T0 = 1_700_000_000  # 2023-11-14 22:13:20 UTC


class FakeClock:
    """Settable stand-in for time.time."""

    def __init__(self, now: float = T0) -> None:
        self.now = float(now)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Recorder(Actor):
    """Actor whose callbacks record what they were called with."""

    def __init__(self, *args, **kwargs):
        self.calls: list[tuple[str, object, str]] = []
        self.names_seen: list[str | None] = []
        super().__init__(*args, **kwargs)

    @callback("addLater")
    async def add_later(self, payload, schedule):
        self.calls.append(("addLater", payload, schedule.id))

    @callback
    async def tick(self, payload, schedule):
        self.calls.append(("tick", payload, schedule.id))

    @callback
    def sync_tick(self, payload, schedule):
        self.calls.append(("sync_tick", payload, schedule.id))

    @callback
    async def boom(self, payload, schedule):
        self.calls.append(("boom", payload, schedule.id))
        raise RuntimeError("callback exploded")

    @callback
    async def whoami(self, payload, schedule):
        self.names_seen.append(self.name)

    @callback
    async def chain(self, payload, schedule):
        self.calls.append(("chain", payload, schedule.id))
        await self.alarms.schedule(60, "tick", payload)

    @callback
    async def relay(self, payload, item):
        self.calls.append(("relay", payload, item.id))
        await self.tasks.queue("tick", payload)

    async def not_a_callback(self, payload, schedule):
        self.calls.append(("not_a_callback", payload, schedule.id))


@pytest.fixture
def config():
    """Default config without loading from disk."""
    return ActorKitConfig()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def alarm_clock():
    return ManualAlarmClock()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "actor.db"


@pytest_asyncio.fixture
async def storage(db_path):
    store = SQLiteStorage(db_path)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def state(db_path, alarm_clock):
    return ActorState(SQLiteStorage(db_path), alarm_clock)


@pytest_asyncio.fixture
async def actor(state, clock):
    recorder = await Recorder.create(state, name="tester", clock=clock)
    yield recorder
    await recorder.state.storage.close()
