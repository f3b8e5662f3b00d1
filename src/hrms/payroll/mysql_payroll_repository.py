from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional, Sequence
from zoneinfo import ZoneInfo

import mysql.connector

from ..common.datetime_utils import month_bounds
from ..core.enums import LeaveBucket, PayrollStatus
from ..core.exceptions import AlreadyResolved, NotFound
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dumps_json, fetchall, fetchone, from_db_utc, loads_json, to_db_utc
from ..employees.migration import migrate_leave_balance
from ..late.model import LateEvent
from .model import (
    Adjustment,
    AttendanceSummary,
    Deductions,
    LeaveDebit,
    Overtime,
    PayrollSnapshot,
    RegenerationEntry,
)
from .repository import PayrollRepository, check_unchanged, is_same_revision

_COLUMNS = """
    payroll_id, employee_id, period_year, period_month, basic_salary, allowances,
    gross_salary, deductions, overtime, adjustments, net_salary, attendance_summary,
    leave_deducted, status, paid_at, version, is_regenerated, regeneration_history, generated_at
"""


def _dec(value) -> Decimal:
    return Decimal(str(value if value is not None else "0"))


def _instant(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class MySQLPayrollRepository(PayrollRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, tz: ZoneInfo):
        self._conn_factory = conn_factory
        self._tz = tz

    def _to_snapshot(self, r: dict) -> PayrollSnapshot:
        deductions = loads_json(r.get("deductions"), {}) or {}
        overtime = loads_json(r.get("overtime"), {}) or {}
        leave = loads_json(r.get("leave_deducted"), {}) or {}
        return PayrollSnapshot(
            snapshot_id=int(r["payroll_id"]),
            employee_id=int(r["employee_id"]),
            year=int(r["period_year"]),
            month=int(r["period_month"]),
            basic_salary=_dec(r["basic_salary"]),
            allowances={k: _dec(v) for k, v in (loads_json(r.get("allowances"), {}) or {}).items()},
            gross_salary=_dec(r["gross_salary"]),
            deductions=Deductions(
                absent=_dec(deductions.get("absent")),
                half_day=_dec(deductions.get("half_day")),
                late=_dec(deductions.get("late")),
            ),
            overtime=Overtime(
                minutes=int(overtime.get("minutes") or 0),
                hours=_dec(overtime.get("hours")),
                amount=_dec(overtime.get("amount")),
            ),
            adjustments=tuple(
                Adjustment(
                    adjustment_id=a["adjustment_id"],
                    amount=_dec(a["amount"]),
                    description=a["description"],
                    added_by=a.get("added_by"),
                    added_at=datetime.fromisoformat(a["added_at"]),
                )
                for a in loads_json(r.get("adjustments"), []) or []
            ),
            net_salary=_dec(r["net_salary"]),
            summary=AttendanceSummary(**(loads_json(r.get("attendance_summary"), {}) or {})),
            leave_deducted=LeaveDebit(
                bucket=LeaveBucket(leave.get("bucket") or LeaveBucket.ANNUAL.value),
                units=_dec(leave.get("units")),
            ),
            status=PayrollStatus(r["status"]),
            paid_at=from_db_utc(r.get("paid_at"), self._tz),
            version=int(r["version"]),
            is_regenerated=bool(r["is_regenerated"]),
            regeneration_history=tuple(
                RegenerationEntry(
                    regenerated_at=_instant(h.get("regenerated_at")),
                    regenerated_by=h.get("regenerated_by"),
                    reason=h.get("reason"),
                    previous_version=int(h.get("previous_version") or 0),
                    previous_net_salary=_dec(h.get("previous_net_salary")),
                    changes=h.get("changes") or {},
                )
                for h in loads_json(r.get("regeneration_history"), []) or []
            ),
            generated_at=from_db_utc(r.get("generated_at"), self._tz),
        )

    @staticmethod
    def _json_fields(s: PayrollSnapshot) -> dict:
        return {
            "allowances": dumps_json(dict(s.allowances)),
            "deductions": dumps_json(
                {"absent": s.deductions.absent, "half_day": s.deductions.half_day, "late": s.deductions.late}
            ),
            "overtime": dumps_json({"minutes": s.overtime.minutes, "hours": s.overtime.hours, "amount": s.overtime.amount}),
            "adjustments": dumps_json(
                [
                    {
                        "adjustment_id": a.adjustment_id,
                        "amount": a.amount,
                        "description": a.description,
                        "added_by": a.added_by,
                        "added_at": a.added_at,
                    }
                    for a in s.adjustments
                ]
            ),
            "attendance_summary": dumps_json(s.summary.as_dict()),
            "leave_deducted": dumps_json({"bucket": s.leave_deducted.bucket, "units": s.leave_deducted.units}),
            "regeneration_history": dumps_json(
                [
                    {
                        "regenerated_at": h.regenerated_at,
                        "regenerated_by": h.regenerated_by,
                        "reason": h.reason,
                        "previous_version": h.previous_version,
                        "previous_net_salary": h.previous_net_salary,
                        "changes": h.changes,
                    }
                    for h in s.regeneration_history
                ]
            ),
        }

    def get_by_id(self, snapshot_id: int) -> Optional[PayrollSnapshot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM payroll_snapshots WHERE payroll_id=%s", (int(snapshot_id),))
            r = fetchone(cur)
            return self._to_snapshot(r) if r else None

    def get_for_month(self, employee_id: int, year: int, month: int) -> Optional[PayrollSnapshot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM payroll_snapshots
                WHERE employee_id=%s AND period_year=%s AND period_month=%s
                """,
                (int(employee_id), int(year), int(month)),
            )
            r = fetchone(cur)
            return self._to_snapshot(r) if r else None

    def list_for_month(self, year: int, month: int) -> Sequence[PayrollSnapshot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM payroll_snapshots
                WHERE period_year=%s AND period_month=%s
                ORDER BY employee_id
                """,
                (int(year), int(month)),
            )
            return [self._to_snapshot(r) for r in fetchall(cur)]

    def _locked_row(self, cur, where: str, params: tuple) -> Optional[PayrollSnapshot]:
        cur.execute(f"SELECT {_COLUMNS} FROM payroll_snapshots WHERE {where} FOR UPDATE", params)
        r = fetchone(cur)
        return self._to_snapshot(r) if r else None

    @staticmethod
    def _apply_leave_change(cur, employee_id: int, leave_change: Mapping[LeaveBucket, Decimal]) -> None:
        changes = {LeaveBucket(b): Decimal(v) for b, v in leave_change.items() if v}
        if not changes:
            return
        cur.execute("SELECT leave_balance FROM employees WHERE employee_id=%s FOR UPDATE", (int(employee_id),))
        r = fetchone(cur)
        if not r:
            raise NotFound(f"Employee {employee_id} not found")
        balance, _ = migrate_leave_balance(loads_json(r.get("leave_balance"), {}))
        cur.execute(
            "UPDATE employees SET leave_balance=%s WHERE employee_id=%s",
            (dumps_json(balance.adjusted(changes).as_dict()), int(employee_id)),
        )

    def save_generation(
        self,
        snapshot: PayrollSnapshot,
        *,
        previous: Optional[PayrollSnapshot],
        leave_change: Mapping[LeaveBucket, Decimal],
        late_events: Sequence[LateEvent],
    ) -> int:
        s = snapshot
        data = self._json_fields(s)
        values = (
            s.basic_salary,
            data["allowances"],
            s.total_allowances,
            s.gross_salary,
            data["deductions"],
            s.total_deductions,
            data["overtime"],
            data["adjustments"],
            s.total_adjustments,
            s.net_salary,
            data["attendance_summary"],
            data["leave_deducted"],
            s.status.value,
            s.version,
            1 if s.is_regenerated else 0,
            data["regeneration_history"],
            to_db_utc(s.generated_at),
        )
        with db_cursor(self._conn_factory) as (_, cur):
            current = self._locked_row(
                cur,
                "employee_id=%s AND period_year=%s AND period_month=%s",
                (s.employee_id, s.year, s.month),
            )
            check_unchanged(current, previous)

            if current is None:
                try:
                    cur.execute(
                        """
                        INSERT INTO payroll_snapshots(
                            employee_id, period_year, period_month, basic_salary, allowances, total_allowances,
                            gross_salary, deductions, total_deductions, overtime, adjustments, total_adjustments,
                            net_salary, attendance_summary, leave_deducted, status, version, is_regenerated,
                            regeneration_history, generated_at
                        )
                        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                        """,
                        (s.employee_id, s.year, s.month) + values,
                    )
                except mysql.connector.IntegrityError as e:
                    raise AlreadyResolved(
                        f"Payroll {s.year}-{s.month:02d} of employee {s.employee_id} was generated meanwhile"
                    ) from e
                snapshot_id = int(cur.lastrowid)
            else:
                cur.execute(
                    """
                    UPDATE payroll_snapshots
                    SET basic_salary=%s, allowances=%s, total_allowances=%s, gross_salary=%s, deductions=%s,
                        total_deductions=%s, overtime=%s, adjustments=%s, total_adjustments=%s, net_salary=%s,
                        attendance_summary=%s, leave_deducted=%s, status=%s, version=%s, is_regenerated=%s,
                        regeneration_history=%s, generated_at=%s
                    WHERE payroll_id=%s
                    """,
                    values + (current.snapshot_id,),
                )
                snapshot_id = current.snapshot_id

            for e in late_events:
                cur.execute(
                    """
                    UPDATE late_events
                    SET is_deducted=%s, deduction_type=%s, deduction_amount=%s, salary_amount=%s, monthly_late_count=%s
                    WHERE late_id=%s
                    """,
                    (
                        1 if e.is_deducted else 0,
                        e.deduction_type.value,
                        e.deduction_amount,
                        e.salary_amount,
                        e.monthly_late_count,
                        e.late_id,
                    ),
                )

            self._apply_leave_change(cur, s.employee_id, leave_change)
            return snapshot_id

    def save(self, snapshot: PayrollSnapshot, *, previous: PayrollSnapshot, lock_attendance: bool = False) -> bool:
        s = snapshot
        data = self._json_fields(s)
        with db_cursor(self._conn_factory) as (_, cur):
            if not is_same_revision(self._locked_row(cur, "payroll_id=%s", (s.snapshot_id,)), previous):
                return False
            cur.execute(
                """
                UPDATE payroll_snapshots
                SET adjustments=%s, total_adjustments=%s, net_salary=%s, status=%s, paid_at=%s
                WHERE payroll_id=%s
                """,
                (data["adjustments"], s.total_adjustments, s.net_salary, s.status.value, to_db_utc(s.paid_at), s.snapshot_id),
            )
            if lock_attendance:
                start, end = month_bounds(s.year, s.month)
                cur.execute(
                    "UPDATE attendance_records SET is_locked=1 WHERE employee_id=%s AND work_date BETWEEN %s AND %s",
                    (s.employee_id, start, end),
                )
            return True
