from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import LateStatus
from .model import LateEvent, LatePolicy


class LateRepository(Protocol):
    def get_by_id(self, late_id: int) -> Optional[LateEvent]:
        raise NotImplementedError

    def get_for_attendance(self, attendance_id: int) -> Optional[LateEvent]:
        raise NotImplementedError

    def create(
        self,
        *,
        employee_id: int,
        attendance_id: int,
        late_date: date,
        late_minutes: int,
        reason: str,
        status: LateStatus,
        monthly_late_count: int,
    ) -> int:
        raise NotImplementedError

    def list_for_range(self, *, employee_id: int, start: date, end: date) -> Sequence[LateEvent]:
        """All events in [start, end], any status, oldest first."""

        raise NotImplementedError

    def decide(
        self,
        *,
        late_id: int,
        status: LateStatus,
        decided_by: Optional[int],
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Move a Pending event to Approved/Rejected. False if it is no longer Pending."""

        raise NotImplementedError

    def delete_pending(self, late_id: int) -> bool:
        raise NotImplementedError


class PolicyRepository(Protocol):
    def get_policy(self) -> LatePolicy:
        """The singleton policy, created with defaults when absent."""

        raise NotImplementedError

    def save_policy(self, policy: LatePolicy) -> None:
        raise NotImplementedError
