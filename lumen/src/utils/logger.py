"""
Lumen - Logging
================
Provides a pre-configured logger factory for consistent, readable
log output across all Lumen modules.

All loggers hang off the ``lumen`` package logger, which owns the single
stdout handler.  Verbosity is set once at startup from ``settings.ENV``:
  • ``"dev"``  → DEBUG level  (maximum detail)
  • ``"prod"`` → WARNING level (errors & warnings only)

Usage:
    from lumen.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Something happened")
"""

import logging
import sys

_ROOT_NAME = "lumen"
HANDLER_NAME = "lumen.console"

# ── Resolve level from environment mode ───────────────────────────────
_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}


def _root_logger() -> logging.Logger:
    """Return the ``lumen`` package logger, attaching its handler once."""
    root = logging.getLogger(_ROOT_NAME)

    # Avoid adding duplicate handlers if the logger already exists
    if not any(h.get_name() == HANDLER_NAME for h in root.handlers):
        root.setLevel(logging.INFO)

        # ── Console Handler ────────────────────────────────────────────
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.set_name(HANDLER_NAME)
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

        # Prevent log propagation to the root logger (avoids duplicates)
        root.propagate = False

    return root


def configure_logging(env: str) -> None:
    """Set the package-wide level from the environment mode (``dev`` / ``prod``)."""
    _root_logger().setLevel(_ENV_LEVEL_MAP.get(env, logging.INFO))


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Create and return a named logger under the ``lumen`` hierarchy.

    Args:
        name:  Typically ``__name__`` of the calling module.
        level: Explicit logging level override.
               If *None*, the level is inherited from the package logger.

    Returns:
        A configured ``logging.Logger`` instance.
    """
    _root_logger()
    if name != _ROOT_NAME and not name.startswith(_ROOT_NAME + "."):
        name = f"{_ROOT_NAME}.{name}"
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger
