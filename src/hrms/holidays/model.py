from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class Holiday:
    """Domain entity: a registered organization holiday."""

    holiday_id: int
    name: str
    holiday_date: date
    is_paid: bool = True
