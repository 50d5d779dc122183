"""
actorkit exception hierarchy.

Every error in the system inherits from ActorKitError.
Each subsystem has its own error class for targeted catching.

Usage:
    try:
        await actor.alarms.schedule(30, "remind")
    except CallbackNotFoundError as e:
        # Callback was never registered on the actor
    except ActorKitError as e:
        # Handle any actorkit error
"""


class ActorKitError(Exception):
    """Base exception for all actorkit errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ━━━ Core Errors ━━━


class ConfigError(ActorKitError):
    """Configuration is invalid, missing, or malformed."""

    pass


# ━━━ Storage Errors ━━━


class StorageError(ActorKitError):
    """Storage backend failure — database errors, unavailable connection, etc."""

    pass


class MigrationError(StorageError):
    """A required schema migration could not be applied."""

    def __init__(
        self,
        message: str,
        namespace: str = "",
        version: int = 0,
        details: dict | None = None,
    ):
        self.namespace = namespace
        self.version = version
        super().__init__(message, details)


# ━━━ Scheduler Errors ━━━


class ScheduleError(ActorKitError):
    """A schedule request was rejected before anything was stored."""

    pass


class CallbackNotFoundError(ScheduleError):
    """The named callback is not registered on the owning actor."""

    def __init__(self, message: str, callback: str = "", details: dict | None = None):
        self.callback = callback
        super().__init__(message, details)
