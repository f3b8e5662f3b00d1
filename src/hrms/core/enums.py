from __future__ import annotations

from enum import Enum


class PunchDirection(str, Enum):
    IN = "IN"
    OUT = "OUT"


class AttendanceStatus(str, Enum):
    """Day status stored on the attendance record."""

    PRESENT = "Present"
    ABSENT = "Absent"
    LEAVE = "Leave"
    HOLIDAY = "Holiday"
    WEEKEND = "Weekend"


class TimingVerdict(str, Enum):
    """Classification of the first IN punch of a day."""

    EARLY = "Early"
    ON_TIME = "On Time"
    ON_TIME_GRACE = "On Time (Grace)"
    LATE = "Late"
    HALF_DAY = "Half Day"
    OFF_DAY_OVERTIME = "Off Day Overtime"


class LateStatus(str, Enum):
    """Approval state of a late event."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class DeductionType(str, Enum):
    NONE = "None"
    SALARY = "Salary"
    LEAVE = "Leave"


class DeductionPreference(str, Enum):
    SALARY = "Salary"
    LEAVE = "Leave"


class LeaveBucket(str, Enum):
    SICK = "sick"
    ANNUAL = "annual"
    CASUAL = "casual"
    UNPAID = "unpaid"


class LeaveStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class PayrollStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    PAID = "Paid"
