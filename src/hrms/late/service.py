from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from typing import Optional

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import month_bounds
from ..common.money import money
from ..common.validators import require_non_empty, require_non_negative
from ..core.enums import DeductionPreference, LateStatus, LeaveBucket
from ..core.exceptions import AlreadyResolved, NotFound, ValidationError
from ..employees.model import Employee, LeaveBalance
from ..employees.repository import EmployeeRepository
from ..leaves.repository import LeaveRepository
from .model import DeductionResolution, LateEvent, LatePolicy
from .repository import LateRepository, PolicyRepository
from .resolver import LateDeductionResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthInputs:
    """Everything the resolver reads for one employee-month."""

    employee: Employee
    events: tuple[LateEvent, ...]
    half_day_dates: tuple[date, ...]


@dataclass(frozen=True)
class DeductionReportRow:
    employee_id: int
    employee_code: str
    full_name: str
    resolution: DeductionResolution

    @property
    def impact(self) -> Decimal:
        """Salary charged plus leave units valued at one day's pay."""
        return money(self.resolution.total_salary_deduction + self.resolution.total_leave_units * self.resolution.per_day_salary)


class LateService:
    def __init__(
        self,
        lates: LateRepository,
        policies: PolicyRepository,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        leaves: LeaveRepository,
        *,
        resolver: Optional[LateDeductionResolver] = None,
    ):
        self._lates = lates
        self._policies = policies
        self._attendance = attendance
        self._employees = employees
        self._leaves = leaves
        self._resolver = resolver or LateDeductionResolver()

    # Filing and approval

    def apply_late(self, *, employee_id: int, work_date: date, reason: str) -> LateEvent:
        reason = require_non_empty(reason, "Reason")
        policy = self._policies.get_policy()

        record = self._attendance.load_day(int(employee_id), work_date)
        if not record or record.attendance_id is None:
            raise NotFound(f"No attendance record for employee {employee_id} on {work_date}")
        if record.late_minutes <= 0 or record.late_minutes < policy.late_threshold_minutes:
            raise ValidationError(
                f"{record.late_minutes} late minutes is below the threshold of {policy.late_threshold_minutes}"
            )
        if self._lates.get_for_attendance(record.attendance_id):
            raise ValidationError(f"A late event already exists for {work_date}")

        start, end = month_bounds(work_date.year, work_date.month)
        earlier = [
            e
            for e in self._lates.list_for_range(employee_id=int(employee_id), start=start, end=end)
            if e.status != LateStatus.REJECTED
        ]

        status = LateStatus.PENDING
        if record.late_minutes < policy.auto_approve_under:
            status = LateStatus.APPROVED

        late_id = self._lates.create(
            employee_id=int(employee_id),
            attendance_id=record.attendance_id,
            late_date=work_date,
            late_minutes=record.late_minutes,
            reason=reason,
            status=status,
            monthly_late_count=len(earlier) + 1,
        )
        logger.info("Late event %s filed for employee %s on %s (%s)", late_id, employee_id, work_date, status.value)
        return self._require(late_id)

    def decide(
        self,
        late_id: int,
        *,
        status: LateStatus,
        decided_by: Optional[int],
        rejection_reason: Optional[str] = None,
    ) -> LateEvent:
        status = LateStatus(status)
        if status == LateStatus.PENDING:
            raise ValidationError("Decision must be Approved or Rejected")
        if status == LateStatus.REJECTED:
            rejection_reason = require_non_empty(rejection_reason or "", "Rejection reason")

        event = self._require(late_id)
        if event.is_deducted:
            raise AlreadyResolved(f"Late event {late_id} has already been deducted")
        if event.status != LateStatus.PENDING:
            raise ValidationError(f"Late event {late_id} is already {event.status.value}")

        if not self._lates.decide(late_id=int(late_id), status=status, decided_by=decided_by, rejection_reason=rejection_reason):
            raise ValidationError(f"Late event {late_id} is no longer pending")
        logger.info("Late event %s %s by %s", late_id, status.value.lower(), decided_by)
        return self._require(late_id)

    def delete_pending(self, late_id: int) -> None:
        event = self._require(late_id)
        if event.status != LateStatus.PENDING or event.is_deducted:
            raise ValidationError("Only pending, undeducted late events can be deleted")
        if not self._lates.delete_pending(int(late_id)):
            raise ValidationError(f"Late event {late_id} could not be deleted")

    def get(self, late_id: int) -> LateEvent:
        return self._require(late_id)

    def _require(self, late_id: int) -> LateEvent:
        event = self._lates.get_by_id(int(late_id))
        if not event:
            raise NotFound(f"Late event {late_id} not found")
        return event

    # Policy

    def get_policy(self) -> LatePolicy:
        return self._policies.get_policy()

    def update_policy(self, **changes) -> LatePolicy:
        allowed = {f.name for f in fields(LatePolicy)}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(f"Unknown policy fields: {', '.join(sorted(unknown))}")

        clean = {}
        for name, value in changes.items():
            if value is None:
                continue
            if name == "deduction_preference":
                clean[name] = self._enum(DeductionPreference, value, name)
            elif name == "leave_bucket":
                clean[name] = self._enum(LeaveBucket, value, name)
            elif name == "is_enabled":
                clean[name] = bool(value)
            else:
                clean[name] = require_non_negative(value, name)

        if clean.get("half_days_to_full_day", 1) < 1:
            raise ValidationError("half_days_to_full_day must be >= 1")

        policy = self._policies.get_policy().updated(**clean)
        self._policies.save_policy(policy)
        logger.info("Late policy updated: %s", ", ".join(sorted(clean)))
        return policy

    @staticmethod
    def _enum(enum_cls, value, name: str):
        try:
            return enum_cls(value)
        except ValueError:
            choices = ", ".join(m.value for m in enum_cls)
            raise ValidationError(f"{name} must be one of: {choices}")

    # Resolution

    def month_inputs(self, employee: Employee, year: int, month: int) -> MonthInputs:
        start, end = month_bounds(year, month)
        events = self._lates.list_for_range(employee_id=employee.employee_id, start=start, end=end)

        half_days = {
            r.work_date
            for r in self._attendance.list_for_range(employee_id=employee.employee_id, start=start, end=end)
            if r.is_half_day
        }
        for leave in self._leaves.list_approved_in_range(employee_id=employee.employee_id, start=start, end=end):
            if leave.is_half_day:
                half_days.update(d for d in leave.days() if start <= d <= end)

        return MonthInputs(employee=employee, events=tuple(events), half_day_dates=tuple(sorted(half_days)))

    def resolve(
        self,
        inputs: MonthInputs,
        *,
        policy: Optional[LatePolicy] = None,
        leave_balance: Optional[LeaveBalance] = None,
    ) -> DeductionResolution:
        policy = policy or self._policies.get_policy()
        balance = leave_balance or inputs.employee.leave_balance
        return self._resolver.resolve(
            inputs.events,
            inputs.half_day_dates,
            policy,
            basic_salary=inputs.employee.basic_salary,
            leave_balance=balance.get(policy.leave_bucket),
        )

    def calculate_deductions(self, employee_id: int, year: int, month: int) -> DeductionResolution:
        """Preview of a month's deductions; nothing is written."""
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFound(f"Employee {employee_id} not found")
        return self.resolve(self.month_inputs(employee, year, month))

    def deduction_report(self, year: int, month: int) -> list[DeductionReportRow]:
        policy = self._policies.get_policy()
        rows = []
        for employee in self._employees.list_active():
            resolution = self.resolve(self.month_inputs(employee, year, month), policy=policy)
            if resolution.total_lates == 0 and resolution.half_day_occurrences == 0:
                continue
            rows.append(
                DeductionReportRow(
                    employee_id=employee.employee_id,
                    employee_code=employee.employee_code,
                    full_name=employee.full_name,
                    resolution=resolution,
                )
            )
        rows.sort(key=lambda row: (-row.impact, row.employee_code))
        return rows
