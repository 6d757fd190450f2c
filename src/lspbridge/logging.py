"""Logging for lspbridge.

Everything logs under the ``lspbridge`` logger. Two extra levels sit around
the standard ones: ``VERBOSE`` for session transitions and forwarded events,
``TRACE`` for every JSON-RPC message on the wire. Output goes to a file when
one is configured; otherwise to stderr, but only on a terminal, since an
editor usually owns the pipe.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lspbridge.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("lspbridge")

# -v count -> level
_VERBOSITY = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

_handler: logging.Handler | None = None


def resolve_level(config: LoggingConfig | None) -> int:
    """Pick the level from a ``-v`` count first, then a level name."""
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return _VERBOSITY[max(0, min(config.verbose, len(_VERBOSITY) - 1))]
    if config.level:
        level = logging.getLevelName(config.level.upper())
        if isinstance(level, int):
            return level
    return logging.INFO


def setup_logging(config: LoggingConfig | None = None) -> logging.Handler | None:
    """Attach the lspbridge handler, replacing one from an earlier call.

    Returns:
        The installed handler, or None when output is suppressed.
    """
    global _handler
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler.close()
        _handler = None

    level = resolve_level(config)
    logger.setLevel(level)

    path = (config.file if config else None) or os.environ.get("LSPBRIDGE_LOG")
    handler: logging.Handler | None = None
    if path:
        try:
            handler = logging.FileHandler(os.path.expanduser(path), encoding="utf-8")
        except OSError as e:
            logger.warning("Cannot open log file %s: %s", path, e)
    if handler is None and sys.stderr.isatty():
        handler = logging.StreamHandler(sys.stderr)
    if handler is None:
        return None

    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", "%H:%M:%S")
    )
    logger.addHandler(handler)
    _handler = handler
    return handler


def get_logger(name: str | None = None) -> logging.Logger:
    """Child of the ``lspbridge`` logger, e.g. ``get_logger("session")``."""
    return logger.getChild(name) if name else logger
