"""Rewrite stored leave balances into the sick/annual/casual/unpaid buckets."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from hrms.container import build_container
from hrms.logging_config import configure_logging


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(settings)

    changed = container.employee_service.migrate_leave_balances()
    print(f"OK: migrated leave balance of {changed} employee(s)")


if __name__ == "__main__":
    main()
