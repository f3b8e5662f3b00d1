"""Example: drive the service layer directly (no Flask).

Controllers are thin; the business rules live in the services.
"""

import importlib
import sys

from config import get_settings_module

from hrms.common.datetime_utils import parse_month
from hrms.container import build_container
from hrms.logging_config import configure_logging


def main():
    month = sys.argv[1] if len(sys.argv) > 1 else "2024-01"
    year, mon = parse_month(month)

    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(settings)

    for row in container.late_service.deduction_report(year, mon):
        print(row.employee_code, row.full_name, row.impact)

    batch = container.payroll_service.generate_batch(year, mon)
    print(f"created={len(batch.created)} skipped={len(batch.skipped)} errors={batch.errors}")


if __name__ == "__main__":
    main()
