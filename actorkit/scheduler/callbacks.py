"""
Callback registry — the names a schedule row may refer to.

Schedules store a callback *name*; at fire time the name is looked up
here rather than on the actor object. Methods opt in with @callback and
are collected when the actor class is defined.

    class Reminders(Actor):
        @callback
        async def remind(self, payload, schedule):
            ...

        @callback("daily-report")
        async def report(self, payload, schedule):
            ...
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Union

logger = logging.getLogger(__name__)

CALLBACK_ATTR = "__actorkit_callback__"

# (payload, schedule) -> None, sync or async
ScheduleCallback = Callable[[Any, Any], Union[Awaitable[None], None]]


def callback(name: str | Callable | None = None) -> Callable:
    """
    Mark an actor method as a schedule callback.

    Usable bare (@callback) or with an explicit name (@callback("name")).
    """

    def decorator(func: Callable) -> Callable:
        setattr(func, CALLBACK_ATTR, cb_name or func.__name__)
        return func

    if callable(name):
        cb_name = None
        return decorator(name)
    cb_name = name
    return decorator


def collect_callbacks(cls: type) -> dict[str, str]:
    """Map callback name -> attribute name for every marked method on cls (MRO aware)."""
    found: dict[str, str] = {}
    for klass in reversed(cls.__mro__):
        for attr, value in vars(klass).items():
            target = getattr(value, "__func__", value)
            cb_name = getattr(target, CALLBACK_ATTR, None)
            if cb_name:
                found[cb_name] = attr
    return found


class CallbackRegistry:
    """
    Name -> callable map owned by one actor.

    Usage:
        registry = CallbackRegistry()
        registry.register("remind", actor.remind)
        fn = registry.resolve("remind")   # None if unknown
    """

    def __init__(self) -> None:
        self._callbacks: dict[str, ScheduleCallback] = {}

    @classmethod
    def for_owner(cls, owner: Any) -> CallbackRegistry:
        """Registry holding the bound @callback methods of owner."""
        registry = cls()
        for cb_name, attr in collect_callbacks(type(owner)).items():
            registry.register(cb_name, getattr(owner, attr))
        return registry

    def register(self, name: str, fn: ScheduleCallback) -> None:
        """Register or replace a callback. Validated here, not at fire time."""
        if not isinstance(name, str) or not name:
            raise TypeError("Callback name must be a non-empty string")
        if not callable(fn):
            raise TypeError(f"Callback {name!r} is not callable")
        if name in self._callbacks:
            logger.debug(f"Replacing callback {name!r}")
        self._callbacks[name] = fn

    def unregister(self, name: str) -> bool:
        return self._callbacks.pop(name, None) is not None

    def resolve(self, name: str) -> ScheduleCallback | None:
        return self._callbacks.get(name)

    def has(self, name: str) -> bool:
        return name in self._callbacks

    def names(self) -> list[str]:
        return sorted(self._callbacks)
