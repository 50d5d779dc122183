"""
actorkit — durable task scheduling for stateful actors.

Public API:
    from actorkit import Actor, ActorState, callback
"""

__version__ = "0.1.0"

# Core
from actorkit.core.config import ActorKitConfig
from actorkit.core.errors import (
    ActorKitError,
    CallbackNotFoundError,
    ConfigError,
    MigrationError,
    ScheduleError,
    StorageError,
)

# Host
from actorkit.host.alarm import AlarmClock, AlarmInfo, AsyncioAlarmClock, ManualAlarmClock
from actorkit.host.state import ActorState

# Storage
from actorkit.storage.migrations import Migration, MigrationRunner
from actorkit.storage.sqlite import SQLiteStorage

# Scheduling
from actorkit.scheduler.alarms import Alarms
from actorkit.scheduler.callbacks import CallbackRegistry, callback
from actorkit.scheduler.queue import QueueItem, TaskQueue
from actorkit.scheduler.schedule import Schedule, ScheduleType, TimeRange

# Actor
from actorkit.actor import Actor

__all__ = [
    # Core
    "ActorKitConfig",
    "ActorKitError",
    "CallbackNotFoundError",
    "ConfigError",
    "MigrationError",
    "ScheduleError",
    "StorageError",
    # Host
    "AlarmClock",
    "AlarmInfo",
    "AsyncioAlarmClock",
    "ManualAlarmClock",
    "ActorState",
    # Storage
    "Migration",
    "MigrationRunner",
    "SQLiteStorage",
    # Scheduling
    "Alarms",
    "CallbackRegistry",
    "callback",
    "QueueItem",
    "TaskQueue",
    "Schedule",
    "ScheduleType",
    "TimeRange",
    # Actor
    "Actor",
]
