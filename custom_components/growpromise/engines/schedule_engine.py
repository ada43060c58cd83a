"""Schedule Engine for GrowPromise.

Expands a commitment's recurrence into concrete due dates:
- `dateutil.rrule` for fixed-step patterns (DAILY, WEEKLY)
- `dateutil.relativedelta` for month clamping (Jan 31 + 1 month = Feb 28)

Due dates are local calendar days. The deadline of a due date is the last
instant of that day in the configured timezone.

IMPORTANT: This module must NOT import from coordinator.py to avoid circular imports.
Only import from const.py, type_defs.py, and standard libraries.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import ClassVar

from dateutil.relativedelta import relativedelta
from dateutil.rrule import DAILY, WEEKLY, rrule

from .. import const
from ..utils.dt_utils import as_utc, end_of_local_day


class RecurrenceEngine:
    """Stateless recurrence expansion for commitments.

    Example:
        RecurrenceEngine.due_dates(
            const.RECURRENCE_MONTHLY, date(2025, 1, 31), None, date(2025, 4, 1)
        )
        → [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31)]
    """

    FREQUENCY_TO_RRULE: ClassVar[dict[str, int]] = {
        const.RECURRENCE_DAILY: DAILY,
        const.RECURRENCE_WEEKLY: WEEKLY,
    }

    @staticmethod
    def due_dates(
        recurrence: str,
        start_date: date,
        end_date: date | None,
        until: date,
    ) -> list[date]:
        """Return every due date in [start_date, min(end_date, until)].

        Args:
            recurrence: One of const.RECURRENCE_OPTIONS
            start_date: First due date of the commitment
            end_date: Optional last day of the commitment (inclusive)
            until: Upper bound of the expansion, usually today

        Returns:
            Due dates in ascending order (empty when the window is empty)
        """
        last = min(end_date, until) if end_date else until
        if last < start_date:
            return []

        if recurrence == const.RECURRENCE_ONCE:
            return [start_date]

        if recurrence in RecurrenceEngine.FREQUENCY_TO_RRULE:
            rule = rrule(
                RecurrenceEngine.FREQUENCY_TO_RRULE[recurrence],
                dtstart=datetime.combine(start_date, time.min),
                until=datetime.combine(last, time.min),
            )
            return [occurrence.date() for occurrence in rule]

        if recurrence == const.RECURRENCE_MONTHLY:
            # Always offset from the start date so a clamped month
            # (Feb 28) does not drag later months down with it.
            result: list[date] = []
            months = 0
            candidate = start_date
            while candidate <= last:
                result.append(candidate)
                months += 1
                candidate = start_date + relativedelta(months=months)
            return result

        raise ValueError(f"Unsupported recurrence: {recurrence}")

    @staticmethod
    def deadline_for(due_date: date, tz=None) -> datetime:
        """Return the UTC deadline of a local due date."""
        return as_utc(end_of_local_day(due_date, tz))
