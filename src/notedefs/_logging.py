"""Logging setup for the notedefs logger tree.

The CLI calls configure_logging() once; modules only create their own
``logging.getLogger(__name__)``. NOTEDEFS_LOG_LEVEL picks the level: INFO
reports index loads, DEBUG adds per-file parse and reload details, WARNING
keeps only skipped files and folder problems.
"""

import logging
import os
import sys

_PACKAGE_LOGGER = "notedefs"


def configure_logging() -> None:
    """Configure logging for the notedefs package.

    Call this once at application startup (e.g., in cli.py).
    Subsequent calls are no-ops.
    """
    root_logger = logging.getLogger(_PACKAGE_LOGGER)

    if root_logger.handlers:
        return

    level_name = os.environ.get("NOTEDEFS_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            fmt="[%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # Prevent propagation to root logger (avoids duplicate messages)
    root_logger.propagate = False


def set_quiet_mode(quiet: bool) -> None:
    """Only show errors when quiet, restore the configured level otherwise."""
    root_logger = logging.getLogger(_PACKAGE_LOGGER)
    if quiet:
        level = logging.ERROR
    else:
        level_name = os.environ.get("NOTEDEFS_LOG_LEVEL", "INFO").upper()
        level = getattr(logging, level_name, logging.INFO)

    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)
