from dataclasses import replace
from decimal import Decimal

import pytest

from fakes import InMemoryEmployees, make_employee
from hrms.core.enums import LeaveBucket
from hrms.core.exceptions import NotFound, ValidationError
from hrms.employees.migration import migrate_leave_balance
from hrms.employees.service import EmployeeService


def test_migration_maps_earned_to_annual():
    balance, changed = migrate_leave_balance({"sick": 4, "earned": "7.5", "casual": 2, "unpaid": 0})

    assert changed is True
    assert balance.annual == Decimal("7.5")
    assert balance.sick == Decimal("4")


def test_migration_fills_defaults_and_keeps_canonical_records():
    balance, changed = migrate_leave_balance({})
    assert changed is True
    assert (balance.sick, balance.annual, balance.casual, balance.unpaid) == (
        Decimal("10"),
        Decimal("10"),
        Decimal("10"),
        Decimal("0"),
    )

    _, changed = migrate_leave_balance({"sick": 1, "annual": 2, "casual": 3, "unpaid": 0})
    assert changed is False


def test_migrate_leave_balances_updates_only_changed_rows():
    employees = InMemoryEmployees(
        [make_employee(1), make_employee(2)],
        raw_balances={
            1: {"sick": 5, "earned": 3, "casual": 1, "unpaid": 0},
            2: {"sick": 5, "annual": 3, "casual": 1, "unpaid": 0},
        },
    )

    updated = EmployeeService(employees, employees).migrate_leave_balances()

    assert updated == 1
    assert employees.get_by_id(1).leave_balance.annual == Decimal("3")


def test_migration_requires_a_source():
    with pytest.raises(ValidationError):
        EmployeeService(InMemoryEmployees()).migrate_leave_balances()


def test_deactivate_moves_employee_and_user_together():
    employees = InMemoryEmployees([make_employee(1, user_id=42)])
    service = EmployeeService(employees)

    service.deactivate(1)

    assert employees.get_by_id(1).is_active is False
    assert employees.deactivated_users == [42]
    with pytest.raises(ValidationError):
        service.deactivate(1)
    with pytest.raises(NotFound):
        service.deactivate(7)


def test_leave_balance_bucket_access():
    balance = make_employee(1).leave_balance
    updated = balance.with_bucket("annual", Decimal("4"))

    assert updated.get("annual") == Decimal("4")
    assert balance.annual == Decimal("10")
    assert replace(make_employee(1), leave_balance=updated).leave_balance.as_dict()["annual"] == Decimal("4")


def test_leave_balance_deltas_never_go_negative():
    balance = make_employee(1).leave_balance

    updated = balance.adjusted({LeaveBucket.ANNUAL: Decimal("-1.5"), LeaveBucket.SICK: Decimal("-12")})

    assert updated.annual == Decimal("8.5")
    assert updated.sick == Decimal("0")
    assert updated.casual == Decimal("10")
