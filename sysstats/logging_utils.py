from __future__ import annotations

import logging
import sys


def setup_logging(level: str = "WARNING") -> logging.Logger:
    """Configure the ``sysstats`` logger to write diagnostics to stderr.

    Repeated calls replace the handler instead of stacking a new one.
    """
    logger = logging.getLogger("sysstats")
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(console)

    return logger
