from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from ..common.datetime_utils import local_calendar_day, now_local, to_local
from ..common.locks import KeyedLock
from ..common.validators import require_non_empty
from ..core.constants import DUPLICATE_PUNCH_WINDOW_SECONDS
from ..core.enums import AttendanceStatus, PunchDirection
from ..core.exceptions import AttendanceLocked, DuplicatePunch, NotFound, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from ..holidays.off_days import OffDayCalendar
from .classifier import TimingClassifier
from .ledger import add_punch, find_duplicate, infer_direction, refresh_bounds
from .model import AttendanceRecord, AuditEntry, Punch
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PunchOutcome:
    accepted: bool
    record: AttendanceRecord
    punch: Punch
    duplicate_of: Optional[Punch] = None


class AttendanceService:
    """Punch ledger use cases: record punches, keep derived fields current, close days."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        calendar: OffDayCalendar,
        *,
        classifier: Optional[TimingClassifier] = None,
        locks: Optional[KeyedLock] = None,
        duplicate_window_seconds: int = DUPLICATE_PUNCH_WINDOW_SECONDS,
    ):
        self._attendance = attendance
        self._employees = employees
        self._calendar = calendar
        self._classifier = classifier or TimingClassifier()
        self._locks = locks or KeyedLock()
        self._duplicate_window = int(duplicate_window_seconds)

    @property
    def tz(self):
        return self._classifier.rules.tz

    def find_employee(self, code: str) -> Employee:
        employee = self._employees.find_by_code(str(code))
        if not employee:
            raise NotFound(f"Employee not found for code {code!r}")
        if not employee.is_active:
            raise ValidationError(f"Employee {employee.employee_code} is inactive")
        return employee

    def record_punch(
        self,
        employee_code: str,
        instant: datetime,
        direction: Optional[PunchDirection] = None,
        *,
        source: str = "manual",
        location: Optional[str] = None,
    ) -> PunchOutcome:
        employee = self.find_employee(employee_code)
        return self.record_punch_for(employee, instant, direction, source=source, location=location)

    def record_punch_for(
        self,
        employee: Employee,
        instant: datetime,
        direction: Optional[PunchDirection] = None,
        *,
        source: str = "manual",
        location: Optional[str] = None,
    ) -> PunchOutcome:
        instant = to_local(instant, self.tz)
        work_date = local_calendar_day(instant, self.tz)

        with self._locks.hold((employee.employee_id, work_date)):
            record = self._attendance.load_day(employee.employee_id, work_date)
            if record is None:
                record = AttendanceRecord(employee_id=employee.employee_id, work_date=work_date)
            if record.is_locked:
                raise AttendanceLocked(f"Attendance for {employee.employee_code} on {work_date} is locked for payroll")

            if direction is None:
                direction = infer_direction(record.punches, instant)
            punch = Punch(timestamp=instant, direction=PunchDirection(direction), source=source, location=location)

            duplicate = find_duplicate(record.punches, instant, window_seconds=self._duplicate_window)
            if duplicate:
                logger.info(
                    "Skipped duplicate punch for %s at %s (existing %s)",
                    employee.employee_code,
                    instant.isoformat(),
                    duplicate.timestamp.isoformat(),
                )
                return PunchOutcome(accepted=False, record=record, punch=punch, duplicate_of=duplicate)

            add_punch(record, punch, window_seconds=self._duplicate_window)
            self._refresh(record, employee)
            self._attendance.save_day(record)

        logger.debug("Recorded %s punch for %s at %s", punch.direction.value, employee.employee_code, instant.isoformat())
        return PunchOutcome(accepted=True, record=record, punch=punch)

    def _refresh(self, record: AttendanceRecord, employee: Employee) -> None:
        off_status = self._calendar.off_day_status(record.work_date)
        idle = off_status or (record.status if record.status == AttendanceStatus.LEAVE else AttendanceStatus.ABSENT)
        result = self._classifier.classify(
            record.punches,
            work_date=record.work_date,
            shift_start=employee.shift_start,
            shift_end=employee.shift_end,
            is_off_day=off_status is not None,
            idle_status=idle,
        )
        record.apply_timing(result)

    def manual_edit(
        self,
        attendance_id: int,
        *,
        modified_by: Optional[int],
        reason: str,
        punches: Optional[Iterable[tuple[datetime, PunchDirection]]] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> AttendanceRecord:
        """Audited overwrite of a day's punches and/or status."""
        reason = require_non_empty(reason, "Reason")

        found = self._attendance.get_by_id(int(attendance_id))
        if not found:
            raise NotFound(f"Attendance record {attendance_id} not found")
        employee = self._employees.get_by_id(found.employee_id)
        if not employee:
            raise NotFound(f"Employee {found.employee_id} not found")

        with self._locks.hold((found.employee_id, found.work_date)):
            # Fresh read under the lock.
            record = self._attendance.load_day(found.employee_id, found.work_date)
            if record.is_locked:
                raise AttendanceLocked("Attendance is locked for payroll")

            previous = record.snapshot()
            if punches is not None:
                new_punches = []
                for timestamp, direction in punches:
                    timestamp = to_local(timestamp, self.tz)
                    if local_calendar_day(timestamp, self.tz) != record.work_date:
                        raise ValidationError(f"Punch {timestamp.isoformat()} is not on {record.work_date}")
                    if find_duplicate(new_punches, timestamp, window_seconds=self._duplicate_window):
                        raise DuplicatePunch(f"Punch {timestamp.isoformat()} duplicates another punch in the edit")
                    new_punches.append(Punch(timestamp=timestamp, direction=PunchDirection(direction), source="manual"))
                record.punches = new_punches
                refresh_bounds(record)

            self._refresh(record, employee)
            if status is not None:
                record.status = AttendanceStatus(status)

            record.is_edited = True
            record.audit_log.append(
                AuditEntry(modified_by=modified_by, modified_at=now_local(self.tz), previous_value=previous, reason=reason)
            )
            self._attendance.save_day(record)

        logger.info("Attendance %s edited by %s: %s", attendance_id, modified_by, reason)
        return record

    def close_day(self, day: date) -> int:
        """Create ABSENT (or HOLIDAY/WEEKEND) records for active employees with no record. Returns count created."""
        existing = {r.employee_id for r in self._attendance.list_for_day(day)}
        off_status = self._calendar.off_day_status(day)

        created = 0
        for employee in self._employees.list_active():
            if employee.employee_id in existing:
                continue
            with self._locks.hold((employee.employee_id, day)):
                if self._attendance.load_day(employee.employee_id, day) is not None:
                    continue
                record = AttendanceRecord(
                    employee_id=employee.employee_id,
                    work_date=day,
                    status=off_status or AttendanceStatus.ABSENT,
                    is_off_day=off_status is not None,
                )
                self._attendance.save_day(record)
                created += 1

        logger.info("Closed %s: %d records created", day.isoformat(), created)
        return created

    def mark_holiday(self, day: date) -> int:
        """Re-derive a day that has just been registered as a holiday. Returns records touched."""
        if not self._calendar.is_holiday(day):
            raise ValidationError(f"{day} is not a registered holiday")

        touched = 0
        for employee in self._employees.list_active():
            with self._locks.hold((employee.employee_id, day)):
                record = self._attendance.load_day(employee.employee_id, day)
                if record is None:
                    record = AttendanceRecord(employee_id=employee.employee_id, work_date=day)
                elif record.is_locked:
                    logger.warning("Holiday %s not applied to locked record of %s", day, employee.employee_code)
                    continue
                self._refresh(record, employee)
                self._attendance.save_day(record)
                touched += 1
        return touched
