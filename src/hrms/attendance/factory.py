from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .strategies.base import ShiftWindow, TimingStrategy
from .strategies.early_strategy import EarlyStrategy
from .strategies.half_day_strategy import HalfDayStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.off_day_strategy import OffDayStrategy
from .strategies.on_time_strategy import OnTimeStrategy


@dataclass
class TimingStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_first_in(self, *, first_in: datetime, window: ShiftWindow, is_off_day: bool) -> TimingStrategy:
        if is_off_day:
            return OffDayStrategy()
        if first_in < window.shift_start:
            return EarlyStrategy()
        if first_in <= window.grace_end:
            return OnTimeStrategy()
        if first_in < window.half_day_boundary:
            return LateStrategy()
        return HalfDayStrategy()
