"""
Logging setup for LexCanada.
"""

import logging
import sys

from lexcanada.core.config import get_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that are too chatty at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "stripe", "anthropic", "openai")


def setup_logging() -> None:
    """Configure the root logger from application settings."""
    config = get_config()
    level_name = "DEBUG" if config.application.debug else config.application.log_level.upper()
    level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout, force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured at {logging.getLevelName(level)}")
