from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from ..core.enums import AttendanceStatus, PunchDirection, TimingVerdict
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dumps_json, fetchall, fetchone, from_db_utc, loads_json, to_db_utc
from .model import AttendanceRecord, AuditEntry, Punch
from .repository import AttendanceRepository

_INT_FIELDS = (
    "late_minutes",
    "early_minutes",
    "overtime_minutes",
    "early_leave_minutes",
    "total_break_minutes",
    "net_working_minutes",
)
_BOOL_FIELDS = (
    "used_grace_period",
    "is_early",
    "is_half_day",
    "has_overtime",
    "early_leave",
    "is_off_day",
    "is_off_day_work",
    "is_edited",
    "is_locked",
)
_COLUMNS = (
    "attendance_id, employee_id, work_date, first_in, last_out, status, timing_verdict, audit_log, "
    + ", ".join(_INT_FIELDS + _BOOL_FIELDS)
)


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, tz: ZoneInfo):
        self._conn_factory = conn_factory
        self._tz = tz

    def _to_record(self, r: dict, punch_rows: Sequence[dict]) -> AttendanceRecord:
        audit = [
            AuditEntry(
                modified_by=a.get("modified_by"),
                modified_at=datetime.fromisoformat(a["modified_at"]),
                previous_value=a.get("previous_value") or {},
                reason=a.get("reason") or "",
            )
            for a in loads_json(r.get("audit_log"), []) or []
        ]
        record = AttendanceRecord(
            attendance_id=int(r["attendance_id"]),
            employee_id=int(r["employee_id"]),
            work_date=r["work_date"],
            punches=[
                Punch(
                    timestamp=from_db_utc(p["punched_at"], self._tz),
                    direction=PunchDirection(p["direction"]),
                    source=p["source"],
                    location=p.get("location"),
                )
                for p in punch_rows
            ],
            first_in=from_db_utc(r.get("first_in"), self._tz),
            last_out=from_db_utc(r.get("last_out"), self._tz),
            status=AttendanceStatus(r["status"]),
            timing_verdict=TimingVerdict(r["timing_verdict"]) if r.get("timing_verdict") else None,
            audit_log=audit,
        )
        for name in _INT_FIELDS:
            setattr(record, name, int(r.get(name) or 0))
        for name in _BOOL_FIELDS:
            setattr(record, name, bool(r.get(name)))
        return record

    def _load_where(self, cur, where: str, params: tuple) -> list[AttendanceRecord]:
        cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE {where} ORDER BY work_date, employee_id", params)
        rows = fetchall(cur)
        if not rows:
            return []

        ids = [int(r["attendance_id"]) for r in rows]
        placeholders = ",".join(["%s"] * len(ids))
        cur.execute(
            f"""
            SELECT attendance_id, punched_at, direction, source, location
            FROM attendance_punches
            WHERE attendance_id IN ({placeholders})
            ORDER BY punched_at
            """,
            tuple(ids),
        )
        punches: dict[int, list[dict]] = {i: [] for i in ids}
        for p in fetchall(cur):
            punches[int(p["attendance_id"])].append(p)
        return [self._to_record(r, punches[int(r["attendance_id"])]) for r in rows]

    def load_day(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            found = self._load_where(cur, "employee_id=%s AND work_date=%s", (int(employee_id), work_date))
            return found[0] if found else None

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            found = self._load_where(cur, "attendance_id=%s", (int(attendance_id),))
            return found[0] if found else None

    def list_for_range(self, *, employee_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._load_where(cur, "employee_id=%s AND work_date BETWEEN %s AND %s", (int(employee_id), start, end))

    def list_for_day(self, work_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._load_where(cur, "work_date=%s", (work_date,))

    def save_day(self, record: AttendanceRecord) -> int:
        values = {
            "employee_id": record.employee_id,
            "work_date": record.work_date,
            "first_in": to_db_utc(record.first_in),
            "last_out": to_db_utc(record.last_out),
            "status": record.status.value,
            "timing_verdict": record.timing_verdict.value if record.timing_verdict else None,
            "audit_log": dumps_json(
                [
                    {
                        "modified_by": a.modified_by,
                        "modified_at": a.modified_at,
                        "previous_value": a.previous_value,
                        "reason": a.reason,
                    }
                    for a in record.audit_log
                ]
            ),
        }
        for name in _INT_FIELDS:
            values[name] = int(getattr(record, name))
        for name in _BOOL_FIELDS:
            values[name] = 1 if getattr(record, name) else 0

        columns = ", ".join(values)
        placeholders = ", ".join(["%s"] * len(values))
        updates = ", ".join(f"{c}=VALUES({c})" for c in values if c not in ("employee_id", "work_date"))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO attendance_records ({columns}) VALUES ({placeholders})
                ON DUPLICATE KEY UPDATE {updates}, attendance_id=LAST_INSERT_ID(attendance_id)
                """,
                tuple(values.values()),
            )
            attendance_id = int(cur.lastrowid)
            cur.execute("DELETE FROM attendance_punches WHERE attendance_id=%s", (attendance_id,))
            if record.punches:
                cur.executemany(
                    """
                    INSERT INTO attendance_punches(attendance_id, punched_at, direction, source, location)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    [
                        (attendance_id, to_db_utc(p.timestamp), p.direction.value, p.source, p.location)
                        for p in record.punches
                    ],
                )

        record.attendance_id = attendance_id
        return attendance_id
