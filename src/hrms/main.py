from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .attendance.sync import PeriodicSync
from .common.http import register_error_handlers
from .container import Container, Repositories, build_container
from .core.constants import DEFAULT_SYNC_INTERVAL_SECONDS
from .database.bootstrap import apply_schema, list_tables
from .late.controller import register as register_lates
from .logging_config import configure_logging
from .payroll.controller import register as register_payroll

logger = logging.getLogger(__name__)


def create_app(*, settings=None, repos: Optional[Repositories] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    if settings is None:
        settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY", "dev-secret-key")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    container = build_container(settings, repos=repos)
    app.extensions["hrms"] = container

    if container.conn is not None:
        db_config = getattr(settings, "DB_CONFIG", {})
        logger.info(
            "Using database %s@%s:%s/%s",
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(container.conn)
            logger.info("Schema ready (tables=%d)", len(list_tables(container.conn)))

    register_error_handlers(app)
    register_attendance(app, container)
    register_lates(app, container)
    register_payroll(app, container)

    if getattr(settings, "AUTO_SYNC", False) and container.device_feeds:
        interval = getattr(settings, "SYNC_INTERVAL_SECONDS", DEFAULT_SYNC_INTERVAL_SECONDS)
        start_periodic_sync(container, interval_seconds=interval)

    return app


def start_periodic_sync(container: Container, *, interval_seconds: float) -> PeriodicSync:
    sync = PeriodicSync(container.sync_devices, interval_seconds=interval_seconds)
    sync.start()
    logger.info("Device sync every %ss for %d device(s)", interval_seconds, len(container.device_feeds))
    return sync
