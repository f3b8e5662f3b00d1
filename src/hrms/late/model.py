from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.constants import (
    DEFAULT_GRACE_DAYS_PER_MONTH,
    DEFAULT_HALF_DAYS_TO_FULL_DAY,
    DEFAULT_LATE_THRESHOLD_MINUTES,
)
from ..core.enums import DeductionPreference, DeductionType, LateStatus, LeaveBucket


@dataclass(frozen=True)
class LateEvent:
    """An approvable unit of lateness for one attendance record."""

    late_id: int
    employee_id: int
    attendance_id: int
    late_date: date
    late_minutes: int
    reason: str
    status: LateStatus = LateStatus.PENDING
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    is_deducted: bool = False
    deduction_type: DeductionType = DeductionType.NONE
    deduction_amount: Decimal = Decimal("0")
    salary_amount: Decimal = Decimal("0")
    monthly_late_count: int = 0


@dataclass(frozen=True)
class LatePolicy:
    """Organization-wide late/half-day deduction policy (injected, never looked up globally)."""

    deduction_preference: DeductionPreference = DeductionPreference.LEAVE
    grace_days_per_month: int = DEFAULT_GRACE_DAYS_PER_MONTH
    late_threshold_minutes: int = DEFAULT_LATE_THRESHOLD_MINUTES
    half_days_to_full_day: int = DEFAULT_HALF_DAYS_TO_FULL_DAY
    auto_approve_under: int = 0
    leave_bucket: LeaveBucket = LeaveBucket.ANNUAL
    is_enabled: bool = True

    def updated(self, **changes) -> "LatePolicy":
        return replace(self, **changes)


@dataclass(frozen=True)
class DeductionLine:
    """How one late event (or one group of half-days) was settled."""

    kind: str  # "late" or "half_day"
    occurred_on: date
    deduction_type: DeductionType
    deduction_amount: Decimal
    leave_units: Decimal = Decimal("0")
    salary_amount: Decimal = Decimal("0")
    late_id: Optional[int] = None
    late_minutes: int = 0
    sequence: int = 0
    forgiven_reason: Optional[str] = None

    @property
    def is_deducted(self) -> bool:
        return self.deduction_type != DeductionType.NONE


@dataclass(frozen=True)
class DeductionResolution:
    per_day_salary: Decimal
    leave_bucket: LeaveBucket
    opening_leave_balance: Decimal
    closing_leave_balance: Decimal
    lines: tuple[DeductionLine, ...] = field(default_factory=tuple)
    total_lates: int = 0
    approved_lates: int = 0
    pending_lates: int = 0
    grace_used: int = 0
    half_day_occurrences: int = 0

    @property
    def late_lines(self) -> tuple[DeductionLine, ...]:
        return tuple(line for line in self.lines if line.kind == "late")

    @property
    def half_day_lines(self) -> tuple[DeductionLine, ...]:
        return tuple(line for line in self.lines if line.kind == "half_day")

    @property
    def deductible_lates(self) -> int:
        return sum(1 for line in self.late_lines if line.is_deducted)

    @property
    def late_salary_deduction(self) -> Decimal:
        return sum((line.salary_amount for line in self.late_lines), Decimal("0"))

    @property
    def half_day_salary_deduction(self) -> Decimal:
        return sum((line.salary_amount for line in self.half_day_lines), Decimal("0"))

    @property
    def total_salary_deduction(self) -> Decimal:
        return self.late_salary_deduction + self.half_day_salary_deduction

    @property
    def total_leave_units(self) -> Decimal:
        return sum((line.leave_units for line in self.lines), Decimal("0"))

    def line_for(self, late_id: int) -> Optional[DeductionLine]:
        return next((line for line in self.lines if line.late_id == late_id), None)
