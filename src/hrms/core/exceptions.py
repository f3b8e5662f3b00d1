class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidTimeFormat(ValidationError):
    """Raised when a shift boundary is not a valid "HH:mm" string."""


class DuplicatePunch(DomainError):
    """A punch within the duplicate window of an existing one.

    Live ingestion drops these with a log line; manual edits reject them.
    """


class InvalidAdjustment(ValidationError):
    """Raised when a manual payroll adjustment is malformed."""


class PayrollLocked(DomainError):
    """Raised when mutating a payroll snapshot that has been paid."""


class AttendanceLocked(DomainError):
    """Raised when mutating an attendance record consumed by a paid payroll."""


class InsufficientLeaveBalance(DomainError):
    """Raised for a leave-only charge when the bucket is exhausted."""


class NotFound(DomainError):
    """Raised for an unknown employee, snapshot, late event or adjustment."""


class AlreadyResolved(DomainError):
    """Raised when re-resolving deducted late events outside a regeneration."""
