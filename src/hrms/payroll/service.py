from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import tzinfo
from decimal import Decimal
from typing import Any, Iterable, Iterator, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import month_bounds, now_local
from ..common.locks import KeyedLock
from ..common.money import money, to_decimal
from ..common.validators import require_min_length
from ..core.constants import MIN_ADJUSTMENT_DESCRIPTION
from ..core.enums import AttendanceStatus, LeaveBucket, PayrollStatus
from ..core.exceptions import AlreadyResolved, DomainError, InvalidAdjustment, NotFound, PayrollLocked, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from ..late.model import DeductionResolution
from ..late.resolver import apply_resolution
from ..late.service import LateService
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import (
    Adjustment,
    AttendanceSummary,
    BatchResult,
    Deductions,
    GenerationResult,
    LeaveDebit,
    PayrollSnapshot,
    RegenerationEntry,
)
from .repository import PayrollRepository

logger = logging.getLogger(__name__)

# Fields compared when a snapshot is regenerated.
_DIFF_FIELDS = {
    "basic_salary": lambda s: s.basic_salary,
    "total_allowances": lambda s: s.total_allowances,
    "gross_salary": lambda s: s.gross_salary,
    "absent_deduction": lambda s: s.deductions.absent,
    "half_day_deduction": lambda s: s.deductions.half_day,
    "late_deduction": lambda s: s.deductions.late,
    "total_deductions": lambda s: s.total_deductions,
    "overtime_amount": lambda s: s.overtime.amount,
    "leave_deducted": lambda s: s.leave_deducted.units,
    "net_salary": lambda s: s.net_salary,
}


def snapshot_diff(old: PayrollSnapshot, new: PayrollSnapshot) -> dict[str, dict[str, Any]]:
    changes = {}
    for name, get in _DIFF_FIELDS.items():
        before, after = get(old), get(new)
        if before != after:
            changes[name] = {"old": before, "new": after}
    return changes


def summarize(records: Iterable[AttendanceRecord], resolution: DeductionResolution) -> AttendanceSummary:
    counts = {status: 0 for status in AttendanceStatus}
    off_day_work = overtime = 0
    for r in records:
        counts[r.status] += 1
        if r.is_off_day_work:
            off_day_work += 1
        overtime += int(r.overtime_minutes or 0)
    return AttendanceSummary(
        present_days=counts[AttendanceStatus.PRESENT],
        absent_days=counts[AttendanceStatus.ABSENT],
        leave_days=counts[AttendanceStatus.LEAVE],
        holiday_days=counts[AttendanceStatus.HOLIDAY],
        weekend_days=counts[AttendanceStatus.WEEKEND],
        half_days=resolution.half_day_occurrences,
        late_days=resolution.total_lates,
        late_approved=resolution.approved_lates,
        late_deductible=resolution.deductible_lates,
        grace_used=resolution.grace_used,
        off_day_work_days=off_day_work,
        overtime_minutes=overtime,
    )


class PayrollService:
    """Assembles monthly payroll snapshots from attendance and late deductions."""

    def __init__(
        self,
        payroll: PayrollRepository,
        employees: EmployeeRepository,
        attendance: AttendanceRepository,
        lates: LateService,
        *,
        tz: Optional[tzinfo] = None,
        calculator: Optional[PayrollCalculator] = None,
        locks: Optional[KeyedLock] = None,
    ):
        self._payroll = payroll
        self._employees = employees
        self._attendance = attendance
        self._lates = lates
        self._tz = tz
        self._calculator = calculator or StandardPayrollCalculator()
        self._locks = locks or KeyedLock()

    # Generation

    def generate(
        self,
        employee_id: int,
        year: int,
        month: int,
        *,
        regenerate: bool = False,
        author: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> GenerationResult:
        start, end = month_bounds(year, month)
        employee_id = int(employee_id)

        # The balance spans months, so it gets its own key; always taken after the month key.
        with self._locks.hold(("payroll", employee_id, year, month)), self._locks.hold(("leave", employee_id)):
            employee = self._employees.get_by_id(employee_id)
            if not employee:
                raise NotFound(f"Employee {employee_id} not found")

            existing = self._payroll.get_for_month(employee.employee_id, year, month)
            if existing and not regenerate:
                return GenerationResult(action="skipped", snapshot=existing)
            if existing and existing.is_paid:
                raise PayrollLocked(f"Payroll {year}-{month:02d} of {employee.employee_code} is already paid")

            inputs = self._lates.month_inputs(employee, year, month)
            balance = employee.leave_balance
            leave_change: dict[LeaveBucket, Decimal] = {}
            if existing:
                # Give back the previous debit so the resolver sees the same opening balance.
                debit = existing.leave_deducted
                if debit.units:
                    balance = balance.with_bucket(debit.bucket, balance.get(debit.bucket) + debit.units)
                    leave_change[debit.bucket] = debit.units
            elif any(e.is_deducted for e in inputs.events):
                raise AlreadyResolved(
                    f"Late events of {employee.employee_code} for {year}-{month:02d} are already deducted"
                )

            policy = self._lates.get_policy()
            resolution = self._lates.resolve(inputs, policy=policy, leave_balance=balance)
            records = self._attendance.list_for_range(employee_id=employee.employee_id, start=start, end=end)

            snapshot = self._assemble(employee, year, month, records, resolution, existing)
            if existing:
                snapshot = snapshot.with_changes(
                    snapshot_id=existing.snapshot_id,
                    status=existing.status,
                    version=existing.version + 1,
                    is_regenerated=True,
                    regeneration_history=existing.regeneration_history
                    + (
                        RegenerationEntry(
                            regenerated_at=now_local(self._tz),
                            regenerated_by=author,
                            reason=reason,
                            previous_version=existing.version,
                            previous_net_salary=existing.net_salary,
                            changes=snapshot_diff(existing, snapshot),
                        ),
                    ),
                )

            bucket = resolution.leave_bucket
            leave_change[bucket] = (
                leave_change.get(bucket, Decimal("0")) + resolution.closing_leave_balance - balance.get(bucket)
            )
            snapshot_id = self._payroll.save_generation(
                snapshot,
                previous=existing,
                leave_change=leave_change,
                late_events=apply_resolution(inputs.events, resolution),
            )
            snapshot = snapshot.with_changes(snapshot_id=snapshot_id)

        action = "regenerated" if existing else "created"
        logger.info(
            "Payroll %s for %s %d-%02d: net=%s version=%d",
            action,
            employee.employee_code,
            year,
            month,
            snapshot.net_salary,
            snapshot.version,
        )
        return GenerationResult(action=action, snapshot=snapshot)

    def _assemble(
        self,
        employee: Employee,
        year: int,
        month: int,
        records: Sequence[AttendanceRecord],
        resolution: DeductionResolution,
        existing: Optional[PayrollSnapshot],
    ) -> PayrollSnapshot:
        calc = self._calculator
        summary = summarize(records, resolution)
        gross = calc.gross(employee.basic_salary, employee.allowances)
        deductions = Deductions(
            absent=calc.absent_deduction(employee.basic_salary, summary.absent_days),
            half_day=money(resolution.half_day_salary_deduction),
            late=money(resolution.late_salary_deduction),
        )
        adjustments = existing.adjustments if existing else ()
        total_adjustments = sum((a.amount for a in adjustments), Decimal("0"))

        return PayrollSnapshot(
            employee_id=employee.employee_id,
            year=int(year),
            month=int(month),
            basic_salary=money(employee.basic_salary),
            allowances={k: money(v) for k, v in employee.allowances.items()},
            gross_salary=gross,
            deductions=deductions,
            overtime=calc.overtime(employee.basic_salary, summary.overtime_minutes),
            adjustments=adjustments,
            net_salary=calc.net(gross, total_adjustments, deductions.total),
            summary=summary,
            leave_deducted=LeaveDebit(bucket=resolution.leave_bucket, units=resolution.total_leave_units),
            generated_at=now_local(self._tz),
        )

    def generate_batch(
        self,
        year: int,
        month: int,
        *,
        employee_ids: Optional[Iterable[int]] = None,
        regenerate: bool = False,
        author: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> BatchResult:
        if employee_ids is None:
            employee_ids = [e.employee_id for e in self._employees.list_active()]

        result = BatchResult()
        for employee_id in employee_ids:
            try:
                outcome = self.generate(employee_id, year, month, regenerate=regenerate, author=author, reason=reason)
            except DomainError as e:
                logger.warning("Payroll %d-%02d failed for employee %s: %s", year, month, employee_id, e)
                result.errors[int(employee_id)] = str(e)
                continue
            result.record(int(employee_id), outcome)

        logger.info(
            "Payroll batch %d-%02d: created=%d regenerated=%d skipped=%d errors=%d",
            year,
            month,
            len(result.created),
            len(result.regenerated),
            len(result.skipped),
            len(result.errors),
        )
        return result

    # Adjustments and status

    def get(self, snapshot_id: int) -> PayrollSnapshot:
        snapshot = self._payroll.get_by_id(int(snapshot_id))
        if not snapshot:
            raise NotFound(f"Payroll {snapshot_id} not found")
        return snapshot

    def list_for_month(self, year: int, month: int) -> Sequence[PayrollSnapshot]:
        month_bounds(year, month)
        return self._payroll.list_for_month(int(year), int(month))

    def add_adjustment(
        self,
        snapshot_id: int,
        amount,
        description: str,
        *,
        author: Optional[int] = None,
    ) -> PayrollSnapshot:
        try:
            amount = money(to_decimal(amount, "Amount"))
        except ValidationError as e:
            raise InvalidAdjustment(str(e))
        if amount == 0:
            raise InvalidAdjustment("Adjustment amount must not be zero")
        description = require_min_length(
            description or "", "Description", MIN_ADJUSTMENT_DESCRIPTION, error=InvalidAdjustment
        )

        with self._holding(snapshot_id) as current:
            self._ensure_unpaid(current)
            adjustment = Adjustment(
                adjustment_id=uuid.uuid4().hex,
                amount=amount,
                description=description,
                added_by=author,
                added_at=now_local(self._tz),
            )
            snapshot = self._with_adjustments(current, current.adjustments + (adjustment,))
            self._save(snapshot, current)

        logger.info("Adjustment %s of %s added to payroll %s", adjustment.adjustment_id, amount, snapshot_id)
        return snapshot

    def remove_adjustment(self, snapshot_id: int, adjustment_id: str) -> PayrollSnapshot:
        with self._holding(snapshot_id) as current:
            self._ensure_unpaid(current)
            remaining = tuple(a for a in current.adjustments if a.adjustment_id != adjustment_id)
            if len(remaining) == len(current.adjustments):
                raise NotFound(f"Adjustment {adjustment_id} not found on payroll {snapshot_id}")
            snapshot = self._with_adjustments(current, remaining)
            self._save(snapshot, current)

        logger.info("Adjustment %s removed from payroll %s", adjustment_id, snapshot_id)
        return snapshot

    @contextmanager
    def _holding(self, snapshot_id: int) -> Iterator[PayrollSnapshot]:
        """Hold the same key as generation for the snapshot's month and yield a fresh read."""
        snapshot = self.get(snapshot_id)
        with self._locks.hold(("payroll", snapshot.employee_id, snapshot.year, snapshot.month)):
            yield self.get(snapshot_id)

    @staticmethod
    def _ensure_unpaid(snapshot: PayrollSnapshot) -> None:
        if snapshot.is_paid:
            raise PayrollLocked(f"Payroll {snapshot.snapshot_id} is paid and can no longer change")

    def _save(self, snapshot: PayrollSnapshot, previous: PayrollSnapshot, *, lock_attendance: bool = False) -> None:
        if not self._payroll.save(snapshot, previous=previous, lock_attendance=lock_attendance):
            raise PayrollLocked(f"Payroll {snapshot.snapshot_id} changed meanwhile; reload it and try again")

    def _with_adjustments(self, snapshot: PayrollSnapshot, adjustments: tuple[Adjustment, ...]) -> PayrollSnapshot:
        total = sum((a.amount for a in adjustments), Decimal("0"))
        net = self._calculator.net(snapshot.gross_salary, total, snapshot.total_deductions)
        return snapshot.with_changes(adjustments=adjustments, net_salary=net)

    def set_status(self, snapshot_id: int, status: PayrollStatus) -> PayrollSnapshot:
        try:
            status = PayrollStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown payroll status {status!r}")

        with self._holding(snapshot_id) as current:
            if current.status == status:
                return current
            if current.is_paid:
                logger.warning("Payroll %s moved from Paid back to %s", snapshot_id, status.value)

            paid = status == PayrollStatus.PAID
            snapshot = current.with_changes(status=status, paid_at=now_local(self._tz) if paid else None)
            self._save(snapshot, current, lock_attendance=paid)

        logger.info("Payroll %s status set to %s", snapshot_id, status.value)
        return snapshot
