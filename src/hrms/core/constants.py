"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

DEFAULT_ORG_TIMEZONE = "Asia/Dhaka"
DEFAULT_SHIFT_START = "09:00"
DEFAULT_SHIFT_END = "18:00"

DEFAULT_GRACE_PERIOD_MINUTES = 30
DEFAULT_HALF_DAY_BOUNDARY = "12:00"
DUPLICATE_PUNCH_WINDOW_SECONDS = 60

# datetime.weekday(): Friday=4, Saturday=5
DEFAULT_WEEKEND_DAYS = (4, 5)

# Salary is pro-rated over a flat 30-day month.
PAYROLL_DAYS_PER_MONTH = 30
STANDARD_HOURS_PER_DAY = 8

DEFAULT_GRACE_DAYS_PER_MONTH = 2
DEFAULT_LATE_THRESHOLD_MINUTES = 1
DEFAULT_HALF_DAYS_TO_FULL_DAY = 2

MIN_ADJUSTMENT_DESCRIPTION = 5

DEFAULT_LEAVE_BALANCE = {
    "sick": Decimal("10"),
    "annual": Decimal("10"),
    "casual": Decimal("10"),
    "unpaid": Decimal("0"),
}

DEFAULT_SYNC_INTERVAL_SECONDS = 300
