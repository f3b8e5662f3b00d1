from __future__ import annotations

from datetime import date
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Holiday
from .repository import HolidayRepository


def _to_holiday(r: dict) -> Holiday:
    return Holiday(
        holiday_id=int(r["holiday_id"]),
        name=r["holiday_name"],
        holiday_date=r["holiday_date"],
        is_paid=bool(r["is_paid"]),
    )


class MySQLHolidayRepository(HolidayRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_date(self, day: date) -> Optional[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT holiday_id, holiday_name, holiday_date, is_paid FROM holidays WHERE holiday_date=%s",
                (day,),
            )
            r = fetchone(cur)
            return _to_holiday(r) if r else None
