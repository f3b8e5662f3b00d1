from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from ...core.enums import TimingVerdict


@dataclass(frozen=True)
class ShiftWindow:
    """Shift boundaries of one calendar day, as absolute instants."""

    shift_start: datetime
    grace_end: datetime
    half_day_boundary: datetime
    shift_end: datetime


@dataclass(frozen=True)
class InDecision:
    verdict: TimingVerdict
    late_minutes: int = 0
    early_minutes: int = 0
    is_early: bool = False
    is_half_day: bool = False
    used_grace_period: bool = False


class TimingStrategy(ABC):
    """Strategy Pattern: encapsulate how we classify the first IN punch."""

    @abstractmethod
    def decide_first_in(self, *, first_in: datetime, window: ShiftWindow) -> InDecision:
        raise NotImplementedError
