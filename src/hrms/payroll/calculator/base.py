from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Mapping

from ..model import Overtime


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll amounts)."""

    @abstractmethod
    def gross(self, basic_salary: Decimal, allowances: Mapping[str, Decimal]) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def per_day(self, basic_salary: Decimal) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def absent_deduction(self, basic_salary: Decimal, absent_days: int) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def overtime(self, basic_salary: Decimal, minutes: int) -> Overtime:
        raise NotImplementedError

    @abstractmethod
    def net(self, gross: Decimal, total_adjustments: Decimal, total_deductions: Decimal) -> Decimal:
        raise NotImplementedError
