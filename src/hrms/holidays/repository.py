from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from .model import Holiday


class HolidayRepository(Protocol):
    def get_for_date(self, day: date) -> Optional[Holiday]:
        raise NotImplementedError
