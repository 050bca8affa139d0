"""Logging setup for the devinit CLI."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Send ``devinit.*`` log records to stderr.

    Args:
        verbose: Log at INFO.
        debug: Log at DEBUG (wins over ``verbose``).
    """
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG

    logger = logging.getLogger("devinit")
    for handler in list(logger.handlers):
        if getattr(handler, "_devinit", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._devinit = True
    logger.addHandler(handler)
    logger.setLevel(level)
