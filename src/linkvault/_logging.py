"""Logging configuration for linkvault.

Library modules only create loggers::

    import logging
    logger = logging.getLogger(__name__)

The command-line entry point calls :func:`configure_logging` once.  The level
comes from the argument, then ``LINKVAULT_LOG_LEVEL``, then ``INFO``.
Output goes to stderr so stdout stays clean for JSON results.
"""

from __future__ import annotations

import logging
import os
import sys

_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach a stderr handler to the ``linkvault`` logger.

    Subsequent calls only adjust the level.
    """
    package_logger = logging.getLogger("linkvault")

    level_name = (level or os.environ.get("LINKVAULT_LOG_LEVEL") or "INFO").upper()
    resolved = getattr(logging, level_name, logging.INFO)
    package_logger.setLevel(resolved)

    if package_logger.handlers:
        for handler in package_logger.handlers:
            handler.setLevel(resolved)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(_FORMAT))
    package_logger.addHandler(handler)
    package_logger.propagate = False
