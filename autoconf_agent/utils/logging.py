import logging
import os
import sys

LOG_LEVEL_ENV = "AUTOCONF_LOG_LEVEL"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_ROOT = "autoconf"
_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str, level: str | int | None = None) -> logging.Logger:
    """Return ``name`` logging to stdout, at ``level`` or $AUTOCONF_LOG_LEVEL (INFO)."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level if level is not None else os.getenv(LOG_LEVEL_ENV, "INFO").upper())
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def set_log_level(level: str | int) -> None:
    """Apply ``level`` to every autoconf.* logger created so far."""
    resolved = level.upper() if isinstance(level, str) else level
    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(logger, logging.Logger):
            continue
        if name == _ROOT or name.startswith(_ROOT + "."):
            logger.setLevel(resolved)
