from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def load_day(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def save_day(self, record: AttendanceRecord) -> int:
        """Upsert keyed on (employee, work_date), punches included, all or nothing."""

        raise NotImplementedError

    def list_for_range(self, *, employee_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_day(self, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
