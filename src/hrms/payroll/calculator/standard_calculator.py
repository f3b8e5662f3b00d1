from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from ...common.money import money, to_decimal
from ...core.constants import PAYROLL_DAYS_PER_MONTH, STANDARD_HOURS_PER_DAY
from ..model import Overtime
from .base import PayrollCalculator


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule: 30-day month, 8-hour day, overtime at the hourly rate."""

    def gross(self, basic_salary: Decimal, allowances: Mapping[str, Decimal]) -> Decimal:
        total = sum((to_decimal(v, k) for k, v in allowances.items()), Decimal("0"))
        return money(to_decimal(basic_salary, "basic_salary") + total)

    def per_day(self, basic_salary: Decimal) -> Decimal:
        return money(to_decimal(basic_salary, "basic_salary") / PAYROLL_DAYS_PER_MONTH)

    def absent_deduction(self, basic_salary: Decimal, absent_days: int) -> Decimal:
        return money(self.per_day(basic_salary) * max(int(absent_days), 0))

    def overtime(self, basic_salary: Decimal, minutes: int) -> Overtime:
        minutes = max(int(minutes), 0)
        hours = money(Decimal(minutes) / 60)
        hourly = self.per_day(basic_salary) / STANDARD_HOURS_PER_DAY
        return Overtime(minutes=minutes, hours=hours, amount=money(hourly * Decimal(minutes) / 60))

    def net(self, gross: Decimal, total_adjustments: Decimal, total_deductions: Decimal) -> Decimal:
        return money(gross + total_adjustments - total_deductions)
