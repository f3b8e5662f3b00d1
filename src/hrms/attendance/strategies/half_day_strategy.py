from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import minutes_between
from ...core.enums import TimingVerdict
from .base import InDecision, ShiftWindow, TimingStrategy


class HalfDayStrategy(TimingStrategy):
    """First IN at or after the half-day boundary."""

    def decide_first_in(self, *, first_in: datetime, window: ShiftWindow) -> InDecision:
        return InDecision(
            verdict=TimingVerdict.HALF_DAY,
            late_minutes=minutes_between(first_in, window.shift_start),
            is_half_day=True,
        )
