from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Employee, LeaveBalance


class EmployeeRepository(Protocol):
    """Repository interface for Employee.

    Services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError

    def find_by_code(self, code: str) -> Optional[Employee]:
        """Lookup by employee code or biometric (device user) id."""

        raise NotImplementedError

    def list_active(self) -> Sequence[Employee]:
        raise NotImplementedError

    def update_leave_balance(self, employee_id: int, balance: LeaveBalance) -> bool:
        raise NotImplementedError

    def deactivate(self, employee_id: int) -> bool:
        """Deactivate the employee and its linked user account together."""

        raise NotImplementedError
