"""Tests for actorkit/scheduler/cron.py"""

import pytest

from actorkit.core.errors import ScheduleError
from actorkit.scheduler.cron import is_valid, next_occurrence

from conftest import T0


class TestNextOccurrence:
    def test_every_minute_rounds_up_to_next_boundary(self):
        # T0 is 20s past a minute boundary
        assert next_occurrence("* * * * *", T0) == T0 + 40

    def test_exactly_on_boundary_moves_to_next(self):
        boundary = T0 + 40
        assert next_occurrence("*/1 * * * *", boundary) == boundary + 60

    def test_fractional_after(self):
        assert next_occurrence("* * * * *", T0 + 39.9) == T0 + 40

    def test_daily_expression_is_utc(self):
        # 2023-11-14 22:13:20 UTC → next 09:00 UTC is 2023-11-15 09:00:00
        assert next_occurrence("0 9 * * *", T0) == 1_700_038_800

    def test_invalid_expression_raises(self):
        with pytest.raises(ScheduleError):
            next_occurrence("not a cron", T0)


class TestIsValid:
    def test_valid(self):
        assert is_valid("0 9 * * 1-5")

    def test_invalid(self):
        assert not is_valid("61 * * * *")
        assert not is_valid("hello")
