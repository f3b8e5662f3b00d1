from __future__ import annotations

from types import SimpleNamespace

import pytest

from fakes import (
    InMemoryAttendance,
    InMemoryEmployees,
    InMemoryHolidays,
    InMemoryLates,
    InMemoryLeaves,
    InMemoryPayroll,
    InMemoryPolicies,
    make_employee,
)
from hrms.container import Repositories, build_container


@pytest.fixture
def settings():
    return SimpleNamespace(
        ORG_TIMEZONE="Asia/Dhaka",
        WEEKEND_DAYS=(4, 5),
        GRACE_PERIOD_MINUTES=30,
        HALF_DAY_BOUNDARY="12:00",
        DUPLICATE_WINDOW_SECONDS=60,
        SYNC_INTERVAL_SECONDS=300,
        LOG_LEVEL="WARNING",
        SECRET_KEY="test-secret",
        TESTING=True,
    )


@pytest.fixture
def employees():
    return InMemoryEmployees([make_employee(1), make_employee(2)])


@pytest.fixture
def repos(employees):
    attendance = InMemoryAttendance()
    lates = InMemoryLates()
    return Repositories(
        employees=employees,
        holidays=InMemoryHolidays(),
        leaves=InMemoryLeaves(),
        attendance=attendance,
        lates=lates,
        policies=InMemoryPolicies(),
        payroll=InMemoryPayroll(employees, lates, attendance),
        raw_balances=employees,
    )


@pytest.fixture
def container(settings, repos):
    return build_container(settings, repos=repos)
