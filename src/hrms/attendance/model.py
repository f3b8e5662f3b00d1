from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from ..core.enums import AttendanceStatus, PunchDirection, TimingVerdict


@dataclass(frozen=True)
class Punch:
    """A single clock-in or clock-out event. Immutable once recorded."""

    timestamp: datetime
    direction: PunchDirection
    source: str = "manual"
    location: Optional[str] = None


@dataclass(frozen=True)
class AuditEntry:
    modified_by: Optional[int]
    modified_at: datetime
    previous_value: dict[str, Any]
    reason: str


@dataclass(frozen=True)
class WorkingTime:
    total_break_minutes: int = 0
    net_working_minutes: int = 0


@dataclass(frozen=True)
class TimingResult:
    """Every derived field of a day, computed from punches + shift + off-day flag."""

    status: AttendanceStatus
    timing_verdict: Optional[TimingVerdict]
    late_minutes: int = 0
    early_minutes: int = 0
    overtime_minutes: int = 0
    early_leave_minutes: int = 0
    total_break_minutes: int = 0
    net_working_minutes: int = 0
    used_grace_period: bool = False
    is_early: bool = False
    is_half_day: bool = False
    has_overtime: bool = False
    early_leave: bool = False
    is_off_day: bool = False
    is_off_day_work: bool = False


@dataclass
class AttendanceRecord:
    """Domain entity: one employee, one calendar day.

    Derived fields are only ever written through ``apply_timing``.
    """

    employee_id: int
    work_date: date
    punches: list[Punch] = field(default_factory=list)
    first_in: Optional[datetime] = None
    last_out: Optional[datetime] = None
    status: AttendanceStatus = AttendanceStatus.ABSENT
    timing_verdict: Optional[TimingVerdict] = None
    late_minutes: int = 0
    early_minutes: int = 0
    overtime_minutes: int = 0
    early_leave_minutes: int = 0
    total_break_minutes: int = 0
    net_working_minutes: int = 0
    used_grace_period: bool = False
    is_early: bool = False
    is_half_day: bool = False
    has_overtime: bool = False
    early_leave: bool = False
    is_off_day: bool = False
    is_off_day_work: bool = False
    is_edited: bool = False
    audit_log: list[AuditEntry] = field(default_factory=list)
    is_locked: bool = False
    attendance_id: Optional[int] = None

    def apply_timing(self, result: TimingResult) -> None:
        for name in TimingResult.__dataclass_fields__:
            setattr(self, name, getattr(result, name))

    def snapshot(self) -> dict[str, Any]:
        """Audit view of the editable state."""
        return {
            "first_in": self.first_in.isoformat() if self.first_in else None,
            "last_out": self.last_out.isoformat() if self.last_out else None,
            "status": self.status.value,
            "punches": [
                {"timestamp": p.timestamp.isoformat(), "direction": p.direction.value, "source": p.source}
                for p in self.punches
            ],
        }
