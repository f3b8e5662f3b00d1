from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.constants import DEFAULT_ORG_TIMEZONE
from ..core.exceptions import InvalidTimeFormat, ValidationError

TzLike = Union[str, ZoneInfo, None]

_ONE_MINUTE = timedelta(minutes=1)


def org_timezone(name: TzLike = None) -> ZoneInfo:
    """Resolve the organization timezone, falling back to UTC for unknown names."""
    if isinstance(name, ZoneInfo):
        return name
    try:
        return ZoneInfo(name or DEFAULT_ORG_TIMEZONE)
    except ZoneInfoNotFoundError:
        return ZoneInfo("UTC")


def parse_hhmm(value: str) -> time:
    """Validate a wall-clock "HH:mm" string.

    Exactly two numeric fields, hours in [0,23], minutes in [0,59].
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat(f"Invalid time format: {value!r}")

    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise InvalidTimeFormat(f"Invalid time format: {value!r}")

    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise InvalidTimeFormat(f"Invalid time format: {value!r}")
    return time(hour=hours, minute=minutes)


def shift_instant(hhmm: str, reference_day: date, tz: TzLike = None) -> datetime:
    """Absolute instant of a shift boundary on ``reference_day`` in org local time."""
    return datetime.combine(reference_day, parse_hhmm(hhmm), tzinfo=org_timezone(tz))


def minutes_between(a: datetime, b: datetime) -> int:
    """Whole minutes from ``b`` to ``a``, floored. Negative when ``a`` is earlier."""
    return (a - b) // _ONE_MINUTE


def to_local(instant: datetime, tz: TzLike = None) -> datetime:
    """Convert to the org timezone. Naive datetimes are taken as already local."""
    zone = org_timezone(tz)
    if instant.tzinfo is None:
        return instant.replace(tzinfo=zone)
    return instant.astimezone(zone)


def local_calendar_day(instant: datetime, tz: TzLike = None) -> date:
    return to_local(instant, tz).date()


def now_local(tz: TzLike = None) -> datetime:
    """Current org-local time. Wrapped so tests can patch it."""
    return datetime.now(org_timezone(tz))


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= int(month) <= 12:
        raise ValidationError(f"Invalid month: {month!r}")
    last = calendar.monthrange(int(year), int(month))[1]
    return date(int(year), int(month), 1), date(int(year), int(month), last)


def parse_month(value: str) -> tuple[int, int]:
    """Parse YYYY-MM into (year, month)."""
    try:
        parsed = datetime.strptime((value or "").strip(), "%Y-%m")
    except ValueError:
        raise ValidationError(f"Invalid month (YYYY-MM): {value!r}")
    return parsed.year, parsed.month


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_instant(value: str, tz: TzLike = None) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are org-local."""
    if not value:
        return None
    try:
        return to_local(datetime.fromisoformat(value.strip()), tz)
    except ValueError:
        raise ValidationError(f"Invalid timestamp: {value!r}")
