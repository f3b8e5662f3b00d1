from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import minutes_between
from ...core.enums import TimingVerdict
from .base import InDecision, ShiftWindow, TimingStrategy


class EarlyStrategy(TimingStrategy):
    """First IN before shift start."""

    def decide_first_in(self, *, first_in: datetime, window: ShiftWindow) -> InDecision:
        return InDecision(
            verdict=TimingVerdict.EARLY,
            early_minutes=minutes_between(window.shift_start, first_in),
            is_early=True,
        )
