from __future__ import annotations

from datetime import datetime

from ...core.enums import TimingVerdict
from .base import InDecision, ShiftWindow, TimingStrategy


class OffDayStrategy(TimingStrategy):
    """Work on a weekend or holiday: never late, all of it is overtime."""

    def decide_first_in(self, *, first_in: datetime, window: ShiftWindow) -> InDecision:
        return InDecision(verdict=TimingVerdict.OFF_DAY_OVERTIME)
