from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from ..core.constants import DEFAULT_WEEKEND_DAYS
from ..core.enums import AttendanceStatus
from .repository import HolidayRepository


class OffDayCalendar:
    """Decides whether a calendar day is an off-day (weekend or holiday)."""

    def __init__(self, holidays: HolidayRepository, *, weekend_days: Iterable[int] = DEFAULT_WEEKEND_DAYS):
        self._holidays = holidays
        self._weekend_days = frozenset(int(d) for d in weekend_days)

    def is_weekend(self, day: date) -> bool:
        return day.weekday() in self._weekend_days

    def is_holiday(self, day: date) -> bool:
        return self._holidays.get_for_date(day) is not None

    def is_off_day(self, day: date) -> bool:
        return self.is_weekend(day) or self.is_holiday(day)

    def off_day_status(self, day: date) -> Optional[AttendanceStatus]:
        """HOLIDAY wins over WEEKEND; None for a working day."""
        if self.is_holiday(day):
            return AttendanceStatus.HOLIDAY
        if self.is_weekend(day):
            return AttendanceStatus.WEEKEND
        return None
