"""Logging configuration for restmodel."""

import sys

from loguru import logger

from restmodel.config import LOG_LEVEL

LOG_FORMAT = "{level.icon} {message}"


def configure_logging(*, verbose: bool = False, level: str | None = None) -> int:
    """Replace loguru's handlers with a single stderr sink.

    ``verbose`` forces DEBUG; otherwise ``level`` is used, falling back to
    ``RESTMODEL_LOG_LEVEL``. Returns the id of the new handler.
    """
    logger.remove()
    if verbose:
        level = "DEBUG"
    return logger.add(sys.stderr, level=level or LOG_LEVEL, format=LOG_FORMAT)
