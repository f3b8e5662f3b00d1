from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from .attendance.classifier import TimingClassifier, TimingRules
from .attendance.factory import TimingStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .attendance.sync import DeviceFeed, DeviceSyncService, SyncResult
from .common.datetime_utils import org_timezone
from .common.locks import KeyedLock
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .employees.service import EmployeeService, RawLeaveBalanceSource
from .holidays.mysql_holiday_repository import MySQLHolidayRepository
from .holidays.off_days import OffDayCalendar
from .holidays.repository import HolidayRepository
from .late.mysql_late_repository import MySQLLateRepository, MySQLPolicyRepository
from .late.repository import LateRepository, PolicyRepository
from .late.service import LateService
from .leaves.mysql_leave_repository import MySQLLeaveRepository
from .leaves.repository import LeaveRepository
from .payroll.mysql_payroll_repository import MySQLPayrollRepository
from .payroll.repository import PayrollRepository
from .payroll.service import PayrollService


@dataclass(frozen=True)
class Repositories:
    employees: EmployeeRepository
    holidays: HolidayRepository
    leaves: LeaveRepository
    attendance: AttendanceRepository
    lates: LateRepository
    policies: PolicyRepository
    payroll: PayrollRepository
    raw_balances: Optional[RawLeaveBalanceSource] = None


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    repos: Repositories

    calendar: OffDayCalendar
    employee_service: EmployeeService
    attendance_service: AttendanceService
    device_sync_service: DeviceSyncService
    late_service: LateService
    payroll_service: PayrollService

    device_feeds: Sequence[DeviceFeed] = field(default_factory=tuple)

    def sync_devices(self) -> list[SyncResult]:
        return self.device_sync_service.sync_all(self.device_feeds)


def _setting(settings: Any, name: str, default: Any) -> Any:
    return getattr(settings, name, default)


def mysql_repositories(conn: DatabaseConnection, *, tz) -> Repositories:
    employees = MySQLEmployeeRepository(conn)
    return Repositories(
        employees=employees,
        holidays=MySQLHolidayRepository(conn),
        leaves=MySQLLeaveRepository(conn),
        attendance=MySQLAttendanceRepository(conn, tz=tz),
        lates=MySQLLateRepository(conn),
        policies=MySQLPolicyRepository(conn),
        payroll=MySQLPayrollRepository(conn, tz=tz),
        raw_balances=employees,
    )


def build_container(
    settings: Any,
    *,
    repos: Optional[Repositories] = None,
    device_feeds: Sequence[DeviceFeed] = (),
) -> Container:
    """Wire repositories and services from a settings module (or any object with the same attributes).

    Without ``repos`` the MySQL repositories are built from ``DB_CONFIG``.
    """
    tz = org_timezone(_setting(settings, "ORG_TIMEZONE", constants.DEFAULT_ORG_TIMEZONE))

    conn = None
    if repos is None:
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(_setting(settings, "DB_CONFIG", {})))
        repos = mysql_repositories(conn, tz=tz)

    calendar = OffDayCalendar(
        repos.holidays,
        weekend_days=_setting(settings, "WEEKEND_DAYS", constants.DEFAULT_WEEKEND_DAYS),
    )
    classifier = TimingClassifier(
        TimingRules(
            grace_period_minutes=int(_setting(settings, "GRACE_PERIOD_MINUTES", constants.DEFAULT_GRACE_PERIOD_MINUTES)),
            half_day_boundary=str(_setting(settings, "HALF_DAY_BOUNDARY", constants.DEFAULT_HALF_DAY_BOUNDARY)),
            tz=tz,
        ),
        strategy_factory=TimingStrategyFactory(),
    )
    locks = KeyedLock()

    attendance_service = AttendanceService(
        repos.attendance,
        repos.employees,
        calendar,
        classifier=classifier,
        locks=locks,
        duplicate_window_seconds=int(
            _setting(settings, "DUPLICATE_WINDOW_SECONDS", constants.DUPLICATE_PUNCH_WINDOW_SECONDS)
        ),
    )
    late_service = LateService(repos.lates, repos.policies, repos.attendance, repos.employees, repos.leaves)
    payroll_service = PayrollService(
        repos.payroll,
        repos.employees,
        repos.attendance,
        late_service,
        tz=tz,
        locks=locks,
    )

    return Container(
        conn=conn,
        repos=repos,
        calendar=calendar,
        employee_service=EmployeeService(repos.employees, repos.raw_balances),
        attendance_service=attendance_service,
        device_sync_service=DeviceSyncService(attendance_service),
        late_service=late_service,
        payroll_service=payroll_service,
        device_feeds=tuple(device_feeds),
    )
