"""Tests for actorkit/scheduler/callbacks.py"""

import pytest

from actorkit.scheduler.callbacks import CallbackRegistry, callback, collect_callbacks


class Base:
    @callback
    async def ping(self, payload, schedule):
        return "base"

    @callback("renamed")
    async def original_name(self, payload, schedule):
        return "renamed"

    async def plain(self, payload, schedule):
        return "plain"


class Child(Base):
    @callback
    async def ping(self, payload, schedule):
        return "child"

    @callback
    def sync_cb(self, payload, schedule):
        return "sync"


class TestCollect:
    def test_bare_and_named_decorators(self):
        assert collect_callbacks(Base) == {"ping": "ping", "renamed": "original_name"}

    def test_undecorated_methods_are_not_callbacks(self):
        assert "plain" not in collect_callbacks(Child)

    def test_subclass_inherits_and_overrides(self):
        found = collect_callbacks(Child)
        assert found == {"ping": "ping", "renamed": "original_name", "sync_cb": "sync_cb"}


@pytest.mark.asyncio
class TestCallbackRegistry:
    async def test_for_owner_binds_methods(self):
        registry = CallbackRegistry.for_owner(Child())
        assert registry.names() == ["ping", "renamed", "sync_cb"]
        assert await registry.resolve("ping")(None, None) == "child"
        assert await registry.resolve("renamed")(None, None) == "renamed"

    async def test_resolve_unknown_returns_none(self):
        registry = CallbackRegistry()
        assert registry.resolve("ghost") is None
        assert registry.has("ghost") is False

    async def test_register_plain_function(self):
        registry = CallbackRegistry()
        registry.register("fn", lambda payload, schedule: payload)
        assert registry.resolve("fn")(5, None) == 5

    async def test_register_validates(self):
        registry = CallbackRegistry()
        with pytest.raises(TypeError):
            registry.register("", lambda p, s: None)
        with pytest.raises(TypeError):
            registry.register(123, lambda p, s: None)  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            registry.register("x", "not callable")  # type: ignore[arg-type]

    async def test_unregister(self):
        registry = CallbackRegistry()
        registry.register("fn", lambda p, s: None)
        assert registry.unregister("fn") is True
        assert registry.unregister("fn") is False
