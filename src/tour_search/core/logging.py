"""Logging helpers."""
from __future__ import annotations

import logging
from typing import Optional

from tour_search.config.settings import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_FILE_NAME = "tour_search.log"
PACKAGE_LOGGER = "tour_search"


def configure_logging(settings: Settings, level: Optional[str] = None) -> logging.Logger:
    """Send ``tour_search`` logs to the console and to ``<log_dir>/tour_search.log``.

    ``level`` overrides ``settings.log_level``. Calling this again replaces the
    handlers installed by the previous call.
    """
    settings.ensure_directories()
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in (
        logging.StreamHandler(),
        logging.FileHandler(settings.log_dir / LOG_FILE_NAME, encoding="utf-8"),
    ):
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    resolved = (level or settings.log_level).upper()
    package_logger.setLevel(getattr(logging, resolved, logging.INFO))
    # Request lines from httpx duplicate the client's own debug logging.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return package_logger
