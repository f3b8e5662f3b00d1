from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from ..core.enums import LeaveBucket, PayrollStatus

_ZERO = Decimal("0")


@dataclass(frozen=True)
class Adjustment:
    """A manual, signed line on a payroll snapshot. Survives regeneration."""

    adjustment_id: str
    amount: Decimal
    description: str
    added_by: Optional[int]
    added_at: datetime


@dataclass(frozen=True)
class Deductions:
    absent: Decimal = _ZERO
    half_day: Decimal = _ZERO
    late: Decimal = _ZERO

    @property
    def total(self) -> Decimal:
        return self.absent + self.half_day + self.late


@dataclass(frozen=True)
class Overtime:
    """Reported only; never part of net salary."""

    minutes: int = 0
    hours: Decimal = _ZERO
    amount: Decimal = _ZERO


@dataclass(frozen=True)
class LeaveDebit:
    bucket: LeaveBucket = LeaveBucket.ANNUAL
    units: Decimal = _ZERO


@dataclass(frozen=True)
class AttendanceSummary:
    present_days: int = 0
    absent_days: int = 0
    leave_days: int = 0
    holiday_days: int = 0
    weekend_days: int = 0
    half_days: int = 0
    late_days: int = 0
    late_approved: int = 0
    late_deductible: int = 0
    grace_used: int = 0
    off_day_work_days: int = 0
    overtime_minutes: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class RegenerationEntry:
    regenerated_at: datetime
    regenerated_by: Optional[int]
    reason: Optional[str]
    previous_version: int
    previous_net_salary: Decimal
    changes: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class PayrollSnapshot:
    """Domain entity: one employee's payroll for one month."""

    employee_id: int
    year: int
    month: int
    basic_salary: Decimal
    gross_salary: Decimal
    net_salary: Decimal
    allowances: Mapping[str, Decimal] = field(default_factory=dict)
    deductions: Deductions = field(default_factory=Deductions)
    overtime: Overtime = field(default_factory=Overtime)
    adjustments: tuple[Adjustment, ...] = ()
    summary: AttendanceSummary = field(default_factory=AttendanceSummary)
    leave_deducted: LeaveDebit = field(default_factory=LeaveDebit)
    status: PayrollStatus = PayrollStatus.PENDING
    paid_at: Optional[datetime] = None
    version: int = 1
    is_regenerated: bool = False
    regeneration_history: tuple[RegenerationEntry, ...] = ()
    generated_at: Optional[datetime] = None
    snapshot_id: Optional[int] = None

    @property
    def total_allowances(self) -> Decimal:
        return sum(self.allowances.values(), _ZERO)

    @property
    def total_deductions(self) -> Decimal:
        return self.deductions.total

    @property
    def total_adjustments(self) -> Decimal:
        return sum((a.amount for a in self.adjustments), _ZERO)

    @property
    def is_paid(self) -> bool:
        return self.status == PayrollStatus.PAID

    def with_changes(self, **changes) -> "PayrollSnapshot":
        return replace(self, **changes)


@dataclass(frozen=True)
class GenerationResult:
    action: str  # "created", "skipped" or "regenerated"
    snapshot: PayrollSnapshot


@dataclass
class BatchResult:
    created: list[int] = field(default_factory=list)
    regenerated: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)

    def record(self, employee_id: int, result: GenerationResult) -> None:
        getattr(self, result.action).append(employee_id)
