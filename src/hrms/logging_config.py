from __future__ import annotations

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """One stream handler on the ``hrms`` logger; safe to call more than once."""
    logger = logging.getLogger("hrms")
    logger.setLevel(level if isinstance(level, int) else str(level).upper())
    if not any(getattr(h, "_hrms_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._hrms_handler = True
        logger.addHandler(handler)
