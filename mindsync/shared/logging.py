"""
Logging configuration for the server process.

One pipe-delimited format for every logger, written to stdout.
Logging must not change program behavior and never includes
request bodies or cookie values.
"""

import logging
import sys

from mindsync.core.config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# The pipeline has no access log; uvicorn's would be the only one.
QUIET_LOGGERS = ("uvicorn.access",)


def configure_logging(settings: Settings) -> None:
    """Configure process-wide logging from the settings record.

    Outside development uvicorn's own lifecycle chatter is reduced to
    warnings; startup and shutdown messages come from the lifecycle
    controller instead.

    Args:
        settings: Loaded application settings.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if not settings.is_development:
        logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
