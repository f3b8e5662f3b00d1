from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import DeductionPreference, DeductionType, LateStatus, LeaveBucket
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import LateEvent, LatePolicy
from .repository import LateRepository, PolicyRepository

ORGANIZATION = "default"

_COLUMNS = """
    late_id, employee_id, attendance_id, late_date, late_minutes, reason, status,
    decided_by, decided_at, rejection_reason, is_deducted, deduction_type,
    deduction_amount, salary_amount, monthly_late_count
"""


def _to_event(r: dict) -> LateEvent:
    return LateEvent(
        late_id=int(r["late_id"]),
        employee_id=int(r["employee_id"]),
        attendance_id=int(r["attendance_id"]),
        late_date=r["late_date"],
        late_minutes=int(r["late_minutes"]),
        reason=r["reason"],
        status=LateStatus(r["status"]),
        decided_by=int(r["decided_by"]) if r.get("decided_by") is not None else None,
        decided_at=r.get("decided_at"),
        rejection_reason=r.get("rejection_reason"),
        is_deducted=bool(r["is_deducted"]),
        deduction_type=DeductionType(r["deduction_type"]),
        deduction_amount=Decimal(r["deduction_amount"]),
        salary_amount=Decimal(r.get("salary_amount") or 0),
        monthly_late_count=int(r.get("monthly_late_count") or 0),
    )


class MySQLLateRepository(LateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, late_id: int) -> Optional[LateEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM late_events WHERE late_id=%s", (int(late_id),))
            r = fetchone(cur)
            return _to_event(r) if r else None

    def get_for_attendance(self, attendance_id: int) -> Optional[LateEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM late_events WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_event(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO late_events(employee_id, attendance_id, late_date, late_minutes, reason, status, monthly_late_count)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(employee_id), int(attendance_id), late_date, int(late_minutes), reason, status.value, int(monthly_late_count)),
            )
            return int(cur.lastrowid)

    def list_for_range(self, *, employee_id: int, start: date, end: date) -> Sequence[LateEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM late_events
                WHERE employee_id=%s AND late_date BETWEEN %s AND %s
                ORDER BY late_date, late_id
                """,
                (int(employee_id), start, end),
            )
            return [_to_event(r) for r in fetchall(cur)]

    def decide(
        self,
        *,
        late_id: int,
        status: LateStatus,
        decided_by: Optional[int],
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE late_events
                SET status=%s, decided_by=%s, decided_at=%s, rejection_reason=%s
                WHERE late_id=%s AND status=%s
                """,
                (
                    status.value,
                    decided_by,
                    datetime.now(timezone.utc).replace(tzinfo=None),
                    rejection_reason,
                    int(late_id),
                    LateStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def delete_pending(self, late_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM late_events WHERE late_id=%s AND status=%s AND is_deducted=0",
                (int(late_id), LateStatus.PENDING.value),
            )
            return cur.rowcount > 0


class MySQLPolicyRepository(PolicyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_policy(self) -> LatePolicy:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT deduction_preference, grace_days_per_month, late_threshold_minutes,
                       half_days_to_full_day, auto_approve_under, leave_bucket, is_enabled
                FROM late_policy WHERE organization=%s
                """,
                (ORGANIZATION,),
            )
            r = fetchone(cur)
            if not r:
                policy = LatePolicy()
                self._write(cur, policy)
                return policy
            return LatePolicy(
                deduction_preference=DeductionPreference(r["deduction_preference"]),
                grace_days_per_month=int(r["grace_days_per_month"]),
                late_threshold_minutes=int(r["late_threshold_minutes"]),
                half_days_to_full_day=int(r["half_days_to_full_day"]),
                auto_approve_under=int(r["auto_approve_under"]),
                leave_bucket=LeaveBucket(r["leave_bucket"]),
                is_enabled=bool(r["is_enabled"]),
            )

    def save_policy(self, policy: LatePolicy) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            self._write(cur, policy)

    @staticmethod
    def _write(cur, policy: LatePolicy) -> None:
        data = asdict(policy)
        data["deduction_preference"] = policy.deduction_preference.value
        data["leave_bucket"] = policy.leave_bucket.value
        data["is_enabled"] = 1 if policy.is_enabled else 0
        columns = ", ".join(["organization", *data])
        placeholders = ", ".join(["%s"] * (len(data) + 1))
        updates = ", ".join(f"{c}=VALUES({c})" for c in data)
        cur.execute(
            f"INSERT INTO late_policy ({columns}) VALUES ({placeholders}) ON DUPLICATE KEY UPDATE {updates}",
            (ORGANIZATION, *data.values()),
        )
