# File: utils/dt_utils.py
"""Date and time utilities for GrowPromise.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Functions:
    - dt_today_local: Get today's date in local timezone
    - as_utc / as_local: Timezone conversion
    - end_of_local_day: Last instant of a local calendar day
    - dt_parse_date: Parse date strings
    - dt_to_utc: Parse and convert to UTC
    - dt_to_iso: Serialize a datetime for storage
    - dt_format_duration: Format timedelta to human-readable string
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
import logging
from zoneinfo import ZoneInfo

# Module-level logger (no HA dependency)
_LOGGER = logging.getLogger(__name__)

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this during integration setup to configure the user's timezone.

    Args:
        tz: ZoneInfo object representing the default timezone
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_today_local(tz: ZoneInfo | None = None, now: datetime | None = None) -> date:
    """Return today's date in local timezone as a `datetime.date`.

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.
        now: Optional reference instant. Uses the current time if not provided.

    Example:
        datetime.date(2025, 4, 7)
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if now is None:
        return datetime.now(tz_info).date()
    return as_local(now, tz_info).date()


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC timezone.

    Naive datetimes are assumed to be in the default timezone.
    """
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone.

    Naive datetimes are assumed to be in UTC.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz_info)


def end_of_local_day(day: date, tz: ZoneInfo | None = None) -> datetime:
    """Return the last representable instant of a local calendar day.

    Args:
        day: Calendar date in the local timezone
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Datetime at 23:59:59.999999 in local timezone (timezone-aware)

    Example:
        end_of_local_day(date(2025, 4, 7)) → 2025-04-07T23:59:59.999999-05:00
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.combine(day, time.max, tzinfo=tz_info)


# ==============================================================================
# Date/Time Parsing
# ==============================================================================


def dt_parse_date(date_str: str | date | None) -> date | None:
    """Safely parse a date string into a `datetime.date`.

    Accepts formats:
    - "2025-04-07" (ISO format)
    - "2025-04-07T10:00:00+00:00" (date part of an ISO datetime)
    - "04/07/2025" (US format)
    - "2025/04/07"

    Returns:
        datetime.date or None if parsing fails.
    """
    if isinstance(date_str, datetime):
        return date_str.date()
    if isinstance(date_str, date):
        return date_str
    if not date_str or not isinstance(date_str, str):
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(date_str).date()
    except ValueError:
        pass

    for fmt in ("%m/%d/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    _LOGGER.debug("DEBUG: Unable to parse date string '%s'", date_str)
    return None


def dt_to_utc(dt_input: str | datetime | None) -> datetime | None:
    """Parse a datetime string, apply timezone if naive, and convert to UTC.

    Example:
        "2025-04-07T14:30:00+00:00" → datetime.datetime(2025, 4, 7, 14, 30, tzinfo=UTC)
    """
    if not dt_input:
        return None
    if isinstance(dt_input, datetime):
        return as_utc(dt_input)
    try:
        parsed = datetime.fromisoformat(dt_input)
    except (TypeError, ValueError):
        _LOGGER.debug("DEBUG: Unable to parse datetime string '%s'", dt_input)
        return None
    return as_utc(parsed)


def dt_to_iso(dt_obj: datetime | None) -> str | None:
    """Serialize a datetime as a UTC ISO 8601 string for storage."""
    if dt_obj is None:
        return None
    return as_utc(dt_obj).isoformat()


# ==============================================================================
# Formatting
# ==============================================================================


def dt_format_duration(td: timedelta | None) -> str:
    """Format a timedelta into a human-readable duration string.

    Returns:
        Duration string like "1d 6h 30m", or "0" if None/zero.

    Examples:
        dt_format_duration(timedelta(days=1, hours=6)) → "1d 6h"
        dt_format_duration(timedelta(minutes=30)) → "30m"
        dt_format_duration(None) → "0"
    """
    if td is None or td <= timedelta():
        return "0"

    total_seconds = int(td.total_seconds())
    if total_seconds <= 0:
        return "0"

    days, remainder = divmod(total_seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60

    parts: list[str] = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    return " ".join(parts) if parts else "0"
