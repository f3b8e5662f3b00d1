from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import LeaveBucket
from ..core.exceptions import AlreadyResolved, NotFound, PayrollLocked
from ..late.model import LateEvent
from .model import PayrollSnapshot


def check_unchanged(current: Optional[PayrollSnapshot], previous: Optional[PayrollSnapshot]) -> None:
    """Raise unless the stored snapshot is still the one a generation started from."""
    if previous is None:
        if current is not None:
            raise AlreadyResolved(
                f"Payroll {current.year}-{current.month:02d} of employee {current.employee_id} was generated meanwhile"
            )
        return

    if current is None:
        raise NotFound(f"Payroll {previous.snapshot_id} not found")
    if current.is_paid:
        raise PayrollLocked(f"Payroll {current.snapshot_id} is paid and can no longer change")
    if (current.version, current.status, current.adjustments) != (
        previous.version,
        previous.status,
        previous.adjustments,
    ):
        raise PayrollLocked(f"Payroll {current.snapshot_id} changed while it was being regenerated")


def is_same_revision(current: Optional[PayrollSnapshot], previous: PayrollSnapshot) -> bool:
    return current is not None and (current.version, current.status, current.adjustments) == (
        previous.version,
        previous.status,
        previous.adjustments,
    )


class PayrollRepository(Protocol):
    def get_by_id(self, snapshot_id: int) -> Optional[PayrollSnapshot]:
        raise NotImplementedError

    def get_for_month(self, employee_id: int, year: int, month: int) -> Optional[PayrollSnapshot]:
        raise NotImplementedError

    def list_for_month(self, year: int, month: int) -> Sequence[PayrollSnapshot]:
        raise NotImplementedError

    def save_generation(
        self,
        snapshot: PayrollSnapshot,
        *,
        previous: Optional[PayrollSnapshot],
        leave_change: Mapping[LeaveBucket, Decimal],
        late_events: Sequence[LateEvent],
    ) -> int:
        """Upsert the snapshot, mark the late events and apply the leave change, all or nothing.

        ``previous`` is the stored snapshot the generation was built from (None
        for a first generation); the write fails through ``check_unchanged``
        when the stored row no longer matches it. ``leave_change`` holds
        per-bucket deltas applied to the balance as stored at write time.
        """

        raise NotImplementedError

    def save(self, snapshot: PayrollSnapshot, *, previous: PayrollSnapshot, lock_attendance: bool = False) -> bool:
        """Persist adjustments/status of an existing snapshot.

        Returns False, writing nothing, unless the stored row still matches
        ``previous``. ``lock_attendance`` locks the month's attendance records
        in the same write.
        """

        raise NotImplementedError
