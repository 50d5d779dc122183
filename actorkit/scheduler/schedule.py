"""
Schedule — one pending task owned by an actor.

Kinds:
    scheduled  fires once at `time`
    delayed    fires once at `time` (= created + delay_in_seconds)
    cron       fires every time `cron` matches; `time` is the next match

Payloads are stored as JSON text and decoded when the row is read.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ScheduleType(str, Enum):
    SCHEDULED = "scheduled"
    DELAYED = "delayed"
    CRON = "cron"


def new_id(length: int = 9) -> str:
    """Short random identifier for a schedule row."""
    return uuid.uuid4().hex[:length]


@dataclass
class Schedule:
    """A pending task."""

    id: str
    callback: str        # registered callback name on the owning actor
    type: ScheduleType
    time: int            # unix seconds of the next (or only) fire
    payload: Any = None
    delay_in_seconds: float | None = None  # delayed only
    cron: str | None = None                # cron only
    identifier: str = "default"            # owning actor name
    created_at: int = field(default_factory=lambda: int(time.time()))

    @property
    def fire_at(self) -> datetime:
        return datetime.fromtimestamp(self.time, tz=timezone.utc)

    @property
    def one_shot(self) -> bool:
        return self.type is not ScheduleType.CRON

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "callback": self.callback,
            "payload": self.payload,
            "type": self.type.value,
            "time": self.time,
            "identifier": self.identifier,
            "created_at": self.created_at,
        }
        if self.type is ScheduleType.DELAYED:
            d["delayInSeconds"] = self.delay_in_seconds
        if self.type is ScheduleType.CRON:
            d["cron"] = self.cron
        return d

    def to_row(self) -> dict:
        """Column values as persisted (payload serialized)."""
        return {
            "id": self.id,
            "callback": self.callback,
            "payload": json.dumps(self.payload),
            "type": self.type.value,
            "time": self.time,
            "delayInSeconds": self.delay_in_seconds,
            "cron": self.cron,
            "created_at": self.created_at,
            "identifier": self.identifier,
        }

    @classmethod
    def from_row(cls, row: dict, default_identifier: str = "default") -> Schedule:
        raw = row.get("payload")
        try:
            payload = json.loads(raw) if raw is not None else None
        except (TypeError, ValueError):
            logger.warning(f"schedule {row['id']}: payload is not valid JSON, returning raw text")
            payload = raw
        return cls(
            id=row["id"],
            callback=row["callback"],
            type=ScheduleType(row["type"]),
            time=int(row["time"]),
            payload=payload,
            delay_in_seconds=row.get("delayInSeconds"),
            cron=row.get("cron"),
            # legacy rows predate the identifier column
            identifier=row.get("identifier") or default_identifier,
            created_at=int(row.get("created_at") or 0),
        )


@dataclass(frozen=True)
class TimeRange:
    """Inclusive bounds over Schedule.time. Open ends are unrestricted."""

    start: datetime | float | None = None
    end: datetime | float | None = None

    def bounds(self) -> tuple[int, int]:
        return (
            _to_seconds(self.start, default=0),
            _to_seconds(self.end, default=999_999_999_999),
        )


def _to_seconds(value: datetime | float | None, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, datetime):
        return int(value.timestamp())
    return int(value)
