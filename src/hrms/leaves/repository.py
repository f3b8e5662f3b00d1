from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import LeaveApplication


class LeaveRepository(Protocol):
    def list_approved_in_range(self, *, employee_id: int, start: date, end: date) -> Sequence[LeaveApplication]:
        """Approved applications overlapping [start, end]."""

        raise NotImplementedError
