"""Per-day punch ledger: ordering, de-duplication and working time."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import minutes_between
from ..core.constants import DUPLICATE_PUNCH_WINDOW_SECONDS
from ..core.enums import PunchDirection
from .model import AttendanceRecord, Punch, WorkingTime


def sort_punches(punches: Sequence[Punch]) -> list[Punch]:
    return sorted(punches, key=lambda p: p.timestamp)


def first_in(punches: Sequence[Punch]) -> Optional[Punch]:
    return next((p for p in sort_punches(punches) if p.direction == PunchDirection.IN), None)


def last_out(punches: Sequence[Punch]) -> Optional[Punch]:
    return next((p for p in reversed(sort_punches(punches)) if p.direction == PunchDirection.OUT), None)


def find_duplicate(
    punches: Sequence[Punch],
    timestamp: datetime,
    *,
    window_seconds: int = DUPLICATE_PUNCH_WINDOW_SECONDS,
) -> Optional[Punch]:
    window = timedelta(seconds=window_seconds)
    return next((p for p in punches if abs(p.timestamp - timestamp) < window), None)


def refresh_bounds(record: AttendanceRecord) -> None:
    record.punches = sort_punches(record.punches)
    first = first_in(record.punches)
    last = last_out(record.punches)
    record.first_in = first.timestamp if first else None
    record.last_out = last.timestamp if last else None


def add_punch(
    record: AttendanceRecord,
    punch: Punch,
    *,
    window_seconds: int = DUPLICATE_PUNCH_WINDOW_SECONDS,
) -> bool:
    """Append a punch unless it duplicates an existing one. Returns False on duplicate."""
    if find_duplicate(record.punches, punch.timestamp, window_seconds=window_seconds):
        return False
    record.punches.append(punch)
    refresh_bounds(record)
    return True


def working_time(punches: Sequence[Punch]) -> WorkingTime:
    """Break and net working minutes of a day.

    Each OUT opens a break that the next IN closes; only positive gaps count.
    Breaks outside [first IN, last OUT] are ignored.
    """
    ordered = sort_punches(punches)
    first = first_in(ordered)
    last = last_out(ordered)
    if not first or not last or last.timestamp <= first.timestamp:
        return WorkingTime()

    total_break = 0
    break_started: Optional[datetime] = None
    for punch in ordered:
        if punch.timestamp < first.timestamp or punch.timestamp > last.timestamp:
            continue
        if punch.direction == PunchDirection.OUT:
            break_started = punch.timestamp
        elif break_started is not None:
            gap = minutes_between(punch.timestamp, break_started)
            if gap > 0:
                total_break += gap
            break_started = None

    span = minutes_between(last.timestamp, first.timestamp)
    return WorkingTime(total_break_minutes=total_break, net_working_minutes=max(span - total_break, 0))


def infer_direction(punches: Sequence[Punch], at: datetime) -> PunchDirection:
    """Alternate from the last punch recorded at or before ``at``.

    Only a fallback for sources that do not report a direction.
    """
    earlier = [p for p in sort_punches(punches) if p.timestamp <= at]
    if not earlier:
        return PunchDirection.IN
    return PunchDirection.OUT if earlier[-1].direction == PunchDirection.IN else PunchDirection.IN
