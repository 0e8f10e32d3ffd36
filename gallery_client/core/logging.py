"""
Logging configuration for the client.

Every module logs through ``get_logger(__name__)``; ``setup_logging``
is called once by the lifespan and only shapes the output.
"""

import logging
import sys

from gallery_client.core.config import Settings, settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that log every request or pool event at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "motor", "pymongo")


def setup_logging(config: Settings = settings) -> None:
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
