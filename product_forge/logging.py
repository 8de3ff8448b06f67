"""Console and file logging for forge builds.

Build steps report through loggers under ``product_forge``. On the console an
``INFO`` record reads like a line of the build log (``[forge] Added plugin on
global_start``); warnings and errors carry their level so they stand out
between build steps. An optional log file receives every record with a
timestamp and the emitting logger.
"""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "product_forge"
CONSOLE_PREFIX = "[forge]"
FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_HANDLER_MARK = "_forge_handler"


class BuildLogFormatter(logging.Formatter):
    """Render build steps plainly and flag anything above ``INFO``.

    Examples
    --------
    >>> record = logging.makeLogRecord({"msg": "Added phrase x", "levelno": 20})
    >>> BuildLogFormatter().format(record)
    '[forge] Added phrase x'
    >>> record = logging.makeLogRecord(
    ...     {"msg": "Skipping", "levelno": 30, "levelname": "WARNING"}
    ... )
    >>> BuildLogFormatter().format(record)
    '[forge] WARNING: Skipping'
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if record.levelno <= logging.INFO:
            return f"{CONSOLE_PREFIX} {message}"
        return f"{CONSOLE_PREFIX} {record.levelname}: {message}"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``product_forge.<name>``, or the package logger without a name."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Attach forge handlers to the package logger.

    Handlers installed by an earlier call are replaced, so a command can be
    invoked repeatedly in one process without echoing every line twice.
    Handlers added by anyone else are left alone.

    Parameters
    ----------
    verbose : bool, optional
        Emit ``DEBUG`` records as well.
    log_file : Path, optional
        Also append every record to this file.

    Returns
    -------
    logging.Logger
        The configured ``product_forge`` logger.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False
    for handler in [h for h in logger.handlers if getattr(h, _HANDLER_MARK, False)]:
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setFormatter(BuildLogFormatter())
    handlers: list[logging.Handler] = [console]
    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
        setattr(handler, _HANDLER_MARK, True)
        logger.addHandler(handler)
    return logger


__all__ = [
    "CONSOLE_PREFIX",
    "BuildLogFormatter",
    "configure_logging",
    "get_logger",
]
