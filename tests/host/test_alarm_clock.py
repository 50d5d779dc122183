"""Tests for actorkit/host/alarm.py"""

import asyncio
import time

import pytest

from actorkit.host.alarm import AlarmInfo, AsyncioAlarmClock, ManualAlarmClock


@pytest.mark.asyncio
class TestManualAlarmClock:
    async def test_set_overwrites(self):
        clock = ManualAlarmClock()
        await clock.set_alarm(100.0)
        await clock.set_alarm(50.0)
        assert await clock.get_alarm() == 50.0
        assert clock.history == [100.0, 50.0]

    async def test_delete(self):
        clock = ManualAlarmClock()
        await clock.set_alarm(100.0)
        await clock.delete_alarm()
        assert await clock.get_alarm() is None
        assert clock.history == [100.0, None]

    async def test_delete_when_unset_is_noop(self):
        clock = ManualAlarmClock()
        await clock.delete_alarm()
        assert clock.history == []


@pytest.mark.asyncio
class TestAsyncioAlarmClock:
    async def test_fires_once(self):
        fired: list[AlarmInfo] = []
        done = asyncio.Event()

        async def handler(info):
            fired.append(info)
            done.set()

        clock = AsyncioAlarmClock(handler)
        await clock.set_alarm(time.time() + 0.05)
        assert await clock.get_alarm() is not None

        await asyncio.wait_for(done.wait(), timeout=2)
        await asyncio.sleep(0.1)
        assert len(fired) == 1
        assert fired[0].retry_count == 0
        assert await clock.get_alarm() is None
        await clock.close()

    async def test_past_deadline_fires_immediately(self):
        done = asyncio.Event()

        async def handler(info):
            done.set()

        clock = AsyncioAlarmClock(handler)
        await clock.set_alarm(time.time() - 100)
        await asyncio.wait_for(done.wait(), timeout=1)
        await clock.close()

    async def test_rearm_replaces_previous_deadline(self):
        fired = []

        async def handler(info):
            fired.append(time.time())

        clock = AsyncioAlarmClock(handler)
        await clock.set_alarm(time.time() + 0.05)
        await clock.set_alarm(time.time() + 10)
        await asyncio.sleep(0.2)
        assert fired == []
        await clock.close()

    async def test_delete_prevents_fire(self):
        fired = []

        async def handler(info):
            fired.append(info)

        clock = AsyncioAlarmClock(handler)
        await clock.set_alarm(time.time() + 0.05)
        await clock.delete_alarm()
        await asyncio.sleep(0.2)
        assert fired == []
        assert await clock.get_alarm() is None

    async def test_handler_exception_is_logged(self, caplog):
        done = asyncio.Event()

        async def handler(info):
            done.set()
            raise RuntimeError("wake failed")

        clock = AsyncioAlarmClock()
        clock.bind(handler)
        await clock.set_alarm(time.time())
        await asyncio.wait_for(done.wait(), timeout=1)
        await clock.close()
        assert "Alarm handler failed" in caplog.text
