"""Logging setup for forge_request.

Modules log through ``logging.getLogger(__name__)``; configure_logging
attaches one stream handler to the package logger and applies the
configured level.
"""

import logging
from typing import Optional

from forge_request.config import Config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(config: Optional[Config] = None) -> logging.Logger:
    """Configure the forge_request logger from configuration."""
    config = config or Config()
    logger = logging.getLogger("forge_request")
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
