from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import minutes_between
from ...core.enums import TimingVerdict
from .base import InDecision, ShiftWindow, TimingStrategy


class OnTimeStrategy(TimingStrategy):
    """First IN between shift start and the end of the grace period (inclusive)."""

    def decide_first_in(self, *, first_in: datetime, window: ShiftWindow) -> InDecision:
        late = minutes_between(first_in, window.shift_start)
        return InDecision(
            verdict=TimingVerdict.ON_TIME if late == 0 else TimingVerdict.ON_TIME_GRACE,
            late_minutes=late,
            used_grace_period=late > 0,
        )
