from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..core.exceptions import NotFound, ValidationError
from .migration import migrate_leave_balance
from .repository import EmployeeRepository

logger = logging.getLogger(__name__)


class RawLeaveBalanceSource(Protocol):
    def iter_raw_leave_balances(self):
        """Yield (employee_id, raw bucket mapping) as stored."""

        raise NotImplementedError


class EmployeeService:
    """Use cases on employees that the engine owns (not plain CRUD)."""

    def __init__(self, employees: EmployeeRepository, raw_balances: Optional[RawLeaveBalanceSource] = None):
        self._employees = employees
        self._raw_balances = raw_balances

    def deactivate(self, employee_id: int) -> None:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFound(f"Employee {employee_id} not found")
        if not employee.is_active:
            raise ValidationError("Employee is already inactive")
        if not self._employees.deactivate(employee.employee_id):
            raise ValidationError("Deactivating employee failed")
        logger.info("Deactivated employee %s and linked user %s", employee.employee_code, employee.user_id)

    def migrate_leave_balances(self) -> int:
        """Rewrite stored balances into the canonical buckets. Returns updated count."""
        if self._raw_balances is None:
            raise ValidationError("No raw leave balance source configured")

        updated = 0
        for employee_id, raw in self._raw_balances.iter_raw_leave_balances():
            balance, changed = migrate_leave_balance(raw)
            if changed and self._employees.update_leave_balance(int(employee_id), balance):
                updated += 1
        logger.info("Leave balance migration complete, updated %d employees", updated)
        return updated
