from __future__ import annotations

from decimal import Decimal
from typing import Iterator, Optional, Sequence

from ..common.money import to_decimal
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dumps_json, fetchall, fetchone, loads_json
from .migration import migrate_leave_balance
from .model import Employee, LeaveBalance
from .repository import EmployeeRepository

_COLUMNS = """
    employee_id, employee_code, biometric_id, full_name, basic_salary,
    shift_start, shift_end, allowances, leave_balance, is_active, user_id
"""


def _to_employee(r: dict) -> Employee:
    allowances = {k: to_decimal(v, k) for k, v in (loads_json(r.get("allowances"), {}) or {}).items()}
    balance, _ = migrate_leave_balance(loads_json(r.get("leave_balance"), {}))
    return Employee(
        employee_id=int(r["employee_id"]),
        employee_code=r["employee_code"],
        biometric_id=r.get("biometric_id"),
        full_name=r["full_name"],
        basic_salary=Decimal(r["basic_salary"]),
        shift_start=r["shift_start"],
        shift_end=r["shift_end"],
        allowances=allowances,
        leave_balance=balance,
        is_active=bool(r["is_active"]),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE employee_id=%s", (int(employee_id),))
            r = fetchone(cur)
            return _to_employee(r) if r else None

    def find_by_code(self, code: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM employees WHERE employee_code=%s OR biometric_id=%s LIMIT 1",
                (code, code),
            )
            r = fetchone(cur)
            return _to_employee(r) if r else None

    def list_active(self) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE is_active=1 ORDER BY employee_id")
            return [_to_employee(r) for r in fetchall(cur)]

    def update_leave_balance(self, employee_id: int, balance: LeaveBalance) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE employees SET leave_balance=%s WHERE employee_id=%s",
                (dumps_json(balance.as_dict()), int(employee_id)),
            )
            return cur.rowcount > 0

    def deactivate(self, employee_id: int) -> bool:
        # Employee and user flags move together in one transaction.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE employees SET is_active=0 WHERE employee_id=%s", (int(employee_id),))
            changed = cur.rowcount > 0
            cur.execute(
                """
                UPDATE users u
                JOIN employees e ON e.user_id = u.user_id
                SET u.is_active=0
                WHERE e.employee_id=%s
                """,
                (int(employee_id),),
            )
            return changed

    def iter_raw_leave_balances(self) -> Iterator[tuple[int, dict]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT employee_id, leave_balance FROM employees ORDER BY employee_id")
            rows = fetchall(cur)
        for r in rows:
            yield int(r["employee_id"]), loads_json(r.get("leave_balance"), {}) or {}
