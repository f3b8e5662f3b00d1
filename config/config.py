"""Settings shared by every environment; environment modules override."""

import os


def _weekend_days(value: str) -> tuple[int, ...]:
    # Python weekday numbers, Monday=0
    return tuple(int(part) for part in value.split(",") if part.strip())


DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "hrms_db"),
}

ORG_TIMEZONE = os.getenv("ORG_TIMEZONE", "Asia/Dhaka")
WEEKEND_DAYS = _weekend_days(os.getenv("WEEKEND_DAYS", "4,5"))
GRACE_PERIOD_MINUTES = int(os.getenv("GRACE_PERIOD_MINUTES", "30"))
HALF_DAY_BOUNDARY = os.getenv("HALF_DAY_BOUNDARY", "12:00")
DUPLICATE_WINDOW_SECONDS = int(os.getenv("DUPLICATE_WINDOW_SECONDS", "60"))
SYNC_INTERVAL_SECONDS = int(os.getenv("SYNC_INTERVAL_SECONDS", "300"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
