from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional

from ..core.constants import DEFAULT_SHIFT_END, DEFAULT_SHIFT_START
from ..core.enums import LeaveBucket


@dataclass(frozen=True)
class LeaveBalance:
    """Leave balance buckets in days (canonical vocabulary)."""

    sick: Decimal = Decimal("0")
    annual: Decimal = Decimal("0")
    casual: Decimal = Decimal("0")
    unpaid: Decimal = Decimal("0")

    def get(self, bucket: LeaveBucket) -> Decimal:
        return getattr(self, LeaveBucket(bucket).value)

    def with_bucket(self, bucket: LeaveBucket, value: Decimal) -> "LeaveBalance":
        data = self.as_dict()
        data[LeaveBucket(bucket).value] = Decimal(value)
        return LeaveBalance(**data)

    def adjusted(self, changes: Mapping[LeaveBucket, Decimal]) -> "LeaveBalance":
        """Apply per-bucket deltas; a bucket never drops below zero."""
        data = self.as_dict()
        for bucket, delta in changes.items():
            name = LeaveBucket(bucket).value
            data[name] = max(data[name] + Decimal(delta), Decimal("0"))
        return LeaveBalance(**data)

    def as_dict(self) -> dict[str, Decimal]:
        return {b.value: getattr(self, b.value) for b in LeaveBucket}


@dataclass(frozen=True)
class Employee:
    """Domain entity: Employee (only the fields the engine reads)."""

    employee_id: int
    employee_code: str
    full_name: str
    basic_salary: Decimal
    shift_start: str = DEFAULT_SHIFT_START
    shift_end: str = DEFAULT_SHIFT_END
    allowances: Mapping[str, Decimal] = field(default_factory=dict)
    leave_balance: LeaveBalance = field(default_factory=LeaveBalance)
    is_active: bool = True
    biometric_id: Optional[str] = None
    user_id: Optional[int] = None
