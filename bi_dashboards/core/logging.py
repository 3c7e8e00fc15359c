"""
Logging setup — console + rotating file handler.

Called once from the FastAPI lifespan. Modules only ever do
``logger = logging.getLogger(__name__)``.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from bi_dashboards.core.config import Settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def configure_logging(settings: Settings) -> None:
    """Install handlers on the root logger (idempotent)."""
    global _configured
    if _configured:
        return

    root = logging.getLogger("")
    root.setLevel(settings.LOG_LEVEL.upper())
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if settings.LOG_FILE:
        log_dir = os.path.dirname(settings.LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True
