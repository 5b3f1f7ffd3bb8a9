"""Logging setup driven by ``AppSettings.log_level``."""

from __future__ import annotations

import logging

from tierwatch.core.config import AppSettings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: AppSettings | None = None) -> None:
    """Configure root logging once for the process."""
    if settings is None:
        settings = AppSettings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("tierwatch").setLevel(level)
