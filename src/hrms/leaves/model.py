from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, Optional

from ..core.enums import LeaveBucket, LeaveStatus


@dataclass(frozen=True)
class LeaveApplication:
    """Domain entity: a leave application (only what payroll reads)."""

    leave_id: int
    employee_id: int
    bucket: LeaveBucket
    start_date: date
    end_date: date
    status: LeaveStatus
    is_half_day: bool = False
    reason: Optional[str] = None

    def days(self) -> Iterator[date]:
        current = self.start_date
        while current <= self.end_date:
            yield current
            current += timedelta(days=1)
