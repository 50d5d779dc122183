"""
Cron evaluation.

Usage:
    ts = next_occurrence("*/5 * * * *", after=time.time())

Requires the `croniter` package. Timestamps are evaluated in UTC.
"""

from __future__ import annotations

from croniter import croniter

from actorkit.core.errors import ScheduleError


def is_valid(expression: str) -> bool:
    return croniter.is_valid(expression)


def next_occurrence(expression: str, after: float) -> int:
    """
    Return the first unix timestamp matching `expression` strictly after `after`.

    Raises ScheduleError for expressions croniter cannot parse.
    """
    if not is_valid(expression):
        raise ScheduleError(f"Invalid cron expression: {expression!r}")
    it = croniter(expression, after)
    nxt = int(it.get_next(float))
    while nxt <= after:
        nxt = int(it.get_next(float))
    return nxt
