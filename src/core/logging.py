"""Logging setup for the application. Modules only ever call `logging.getLogger(__name__)`."""

import logging
from typing import Optional

from src.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a stream handler to the root logger. Uses the configured log level unless one is given."""
    log_level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(log_level)
