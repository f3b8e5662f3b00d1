from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from ..common.datetime_utils import minutes_between, org_timezone, parse_hhmm, shift_instant, to_local
from ..core.constants import DEFAULT_GRACE_PERIOD_MINUTES, DEFAULT_HALF_DAY_BOUNDARY
from ..core.enums import AttendanceStatus
from .factory import TimingStrategyFactory
from .ledger import first_in, last_out, working_time
from .model import Punch, TimingResult
from .strategies.base import InDecision, ShiftWindow


@dataclass(frozen=True)
class TimingRules:
    grace_period_minutes: int = DEFAULT_GRACE_PERIOD_MINUTES
    half_day_boundary: str = DEFAULT_HALF_DAY_BOUNDARY
    tz: ZoneInfo = field(default_factory=org_timezone)

    def __post_init__(self):
        parse_hhmm(self.half_day_boundary)


@dataclass(frozen=True)
class OutDecision:
    overtime_minutes: int = 0
    early_leave_minutes: int = 0
    has_overtime: bool = False
    early_leave: bool = False


class TimingClassifier:
    """Derive a day's timing fields from its punches, the shift and the off-day flag.

    No hidden state: the same inputs always give the same ``TimingResult``.
    """

    def __init__(self, rules: Optional[TimingRules] = None, *, strategy_factory: Optional[TimingStrategyFactory] = None):
        self._rules = rules or TimingRules()
        self._factory = strategy_factory or TimingStrategyFactory()

    @property
    def rules(self) -> TimingRules:
        return self._rules

    def window_for(self, day: date, *, shift_start: str, shift_end: str) -> ShiftWindow:
        start = shift_instant(shift_start, day, self._rules.tz)
        return ShiftWindow(
            shift_start=start,
            grace_end=start + timedelta(minutes=self._rules.grace_period_minutes),
            half_day_boundary=shift_instant(self._rules.half_day_boundary, day, self._rules.tz),
            shift_end=shift_instant(shift_end, day, self._rules.tz),
        )

    def classify_in(self, first_in_at: datetime, window: ShiftWindow, *, is_off_day: bool) -> InDecision:
        first_in_at = to_local(first_in_at, self._rules.tz)
        strategy = self._factory.for_first_in(first_in=first_in_at, window=window, is_off_day=is_off_day)
        return strategy.decide_first_in(first_in=first_in_at, window=window)

    def classify_out(self, last_out_at: datetime, shift_end: datetime) -> OutDecision:
        last_out_at = to_local(last_out_at, self._rules.tz)
        if last_out_at > shift_end:
            return OutDecision(overtime_minutes=minutes_between(last_out_at, shift_end), has_overtime=True)
        if last_out_at < shift_end:
            return OutDecision(early_leave_minutes=minutes_between(shift_end, last_out_at), early_leave=True)
        return OutDecision()

    def classify(
        self,
        punches: Sequence[Punch],
        *,
        work_date: date,
        shift_start: str,
        shift_end: str,
        is_off_day: bool,
        idle_status: AttendanceStatus = AttendanceStatus.ABSENT,
    ) -> TimingResult:
        """``idle_status`` is the day status when there is no IN punch yet."""
        first = first_in(punches)
        last = last_out(punches)
        worked = working_time(punches)
        window = self.window_for(work_date, shift_start=shift_start, shift_end=shift_end)

        status = AttendanceStatus.PRESENT if first else idle_status
        fields: dict = dict(
            status=status,
            timing_verdict=None,
            total_break_minutes=worked.total_break_minutes,
            net_working_minutes=worked.net_working_minutes,
            is_off_day=is_off_day,
        )

        if first:
            decision = self.classify_in(first.timestamp, window, is_off_day=is_off_day)
            fields.update(
                timing_verdict=decision.verdict,
                late_minutes=decision.late_minutes,
                early_minutes=decision.early_minutes,
                is_early=decision.is_early,
                is_half_day=decision.is_half_day,
                used_grace_period=decision.used_grace_period,
            )

        if is_off_day:
            if first and last:
                fields.update(
                    overtime_minutes=worked.net_working_minutes,
                    has_overtime=worked.net_working_minutes > 0,
                    is_off_day_work=True,
                )
        elif last:
            out = self.classify_out(last.timestamp, window.shift_end)
            fields.update(
                overtime_minutes=out.overtime_minutes,
                early_leave_minutes=out.early_leave_minutes,
                has_overtime=out.has_overtime,
                early_leave=out.early_leave,
            )

        return TimingResult(**fields)
