"""Unit tests for RecurrenceEngine - recurrence expansion into due dates.

Pure Python tests, no Home Assistant fixtures.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import pytest

from custom_components.growpromise import const
from custom_components.growpromise.engines.schedule_engine import RecurrenceEngine

# =============================================================================
# Test: due_dates
# =============================================================================


class TestDueDates:
    """Tests for RecurrenceEngine.due_dates."""

    def test_once_yields_start_date(self) -> None:
        """A ONCE commitment is due on its start date only."""
        assert RecurrenceEngine.due_dates(
            const.RECURRENCE_ONCE, date(2025, 3, 1), None, date(2025, 3, 20)
        ) == [date(2025, 3, 1)]

    def test_once_in_the_future_yields_nothing(self) -> None:
        """Nothing is owed before the start date."""
        assert (
            RecurrenceEngine.due_dates(
                const.RECURRENCE_ONCE, date(2025, 3, 21), None, date(2025, 3, 20)
            )
            == []
        )

    def test_daily_is_inclusive_of_both_ends(self) -> None:
        """DAILY expands every day from start to until."""
        assert RecurrenceEngine.due_dates(
            const.RECURRENCE_DAILY, date(2025, 3, 1), None, date(2025, 3, 4)
        ) == [date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 3), date(2025, 3, 4)]

    def test_daily_stops_at_end_date(self) -> None:
        """The end date bounds the expansion when it comes before until."""
        assert RecurrenceEngine.due_dates(
            const.RECURRENCE_DAILY, date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 9)
        ) == [date(2025, 3, 1), date(2025, 3, 2)]

    def test_weekly_steps_seven_days(self) -> None:
        """WEEKLY keeps the start weekday."""
        assert RecurrenceEngine.due_dates(
            const.RECURRENCE_WEEKLY, date(2025, 3, 3), None, date(2025, 3, 20)
        ) == [date(2025, 3, 3), date(2025, 3, 10), date(2025, 3, 17)]

    def test_monthly_clamps_short_months(self) -> None:
        """Jan 31 + 1 month is Feb 28, and March returns to the 31st."""
        assert RecurrenceEngine.due_dates(
            const.RECURRENCE_MONTHLY, date(2025, 1, 31), None, date(2025, 4, 1)
        ) == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31)]

    def test_unknown_recurrence_raises(self) -> None:
        """An unsupported recurrence is a programming error."""
        with pytest.raises(ValueError):
            RecurrenceEngine.due_dates(
                "HOURLY", date(2025, 3, 1), None, date(2025, 3, 2)
            )


# =============================================================================
# Test: deadline_for
# =============================================================================


def test_deadline_is_end_of_local_day_in_utc() -> None:
    """The deadline is 23:59:59.999999 local, expressed in UTC."""
    deadline = RecurrenceEngine.deadline_for(
        date(2025, 7, 1), ZoneInfo("America/New_York")
    )
    assert deadline.tzinfo == UTC
    # EDT is UTC-4
    assert deadline == datetime(2025, 7, 2, 3, 59, 59, 999999, tzinfo=UTC)
