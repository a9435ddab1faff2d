"""Logging for the extension host and the extensions it runs.

Everything logs below the ``extensionhost`` logger. Each running extension
gets ``extensionhost.extension.<name>``, and its records are tagged with the
extension name so a shared log file stays readable::

    14:02:11 warning [greeter]: Command 'greeter:x' is registered but not declared
    14:02:11 info [manager]: Starting extension 'greeter'

Output goes to the file named by ``logging.file`` (or ``EXTHOST_LOG``), else
to stderr when it is a terminal, else nowhere.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from extensionhost.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

ROOT_LOGGER_NAME = "extensionhost"
EXTENSION_LOGGER_PREFIX = f"{ROOT_LOGGER_NAME}.extension."
LOG_FILE_ENV = "EXTHOST_LOG"

logger = logging.getLogger(ROOT_LOGGER_NAME)

_handlers: list[logging.Handler] = []
_initialized = False

_NAMED_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# -v count: 0 errors only .. 4 everything
_VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)


class HostFormatter(logging.Formatter):
    """Lowercase level names and a short ``[source]`` tag per record.

    The source is the extension name for extension loggers and the last
    part of the module name for the host's own loggers.
    """

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s [%(source)s]: %(message)s", "%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        record.source = record_source(record.name)
        return super().format(record)


def record_source(logger_name: str) -> str:
    if logger_name.startswith(EXTENSION_LOGGER_PREFIX):
        return logger_name[len(EXTENSION_LOGGER_PREFIX) :]
    return logger_name.rsplit(".", 1)[-1]


def resolve_level(config: LoggingConfig | None) -> int:
    """Work out the effective log level for a logging config.

    ``verbose`` wins over ``level``; INFO when neither is set.
    """
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return _VERBOSITY_LEVELS[max(0, min(config.verbose, len(_VERBOSITY_LEVELS) - 1))]
    if config.level:
        return _NAMED_LEVELS.get(config.level.upper(), logging.INFO)
    return logging.INFO


def _open_handler(log_path: str | None) -> logging.Handler | None:
    if log_path:
        try:
            return logging.FileHandler(os.path.expanduser(log_path), mode="a", encoding="utf-8")
        except OSError as e:
            if sys.stderr.isatty():
                print(f"[extensionhost] Failed to open log file: {e}", file=sys.stderr)
            else:
                return None
    if sys.stderr.isatty():
        return logging.StreamHandler(sys.stderr)
    return None


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Attach the host's handler to the ``extensionhost`` logger.

    Only the first call has an effect until ``reset_logging`` is called.
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = resolve_level(config)
    logger.setLevel(level)

    log_path = config.file if config is not None and config.file else None
    handler = _open_handler(log_path or os.environ.get(LOG_FILE_ENV))
    if handler is None:
        return
    handler.setLevel(level)
    handler.setFormatter(HostFormatter())
    logger.addHandler(handler)
    _handlers.append(handler)


def reset_logging() -> None:
    """Detach and close the handlers added by ``setup_logging``."""
    global _initialized
    for handler in _handlers:
        logger.removeHandler(handler)
        handler.close()
    _handlers.clear()
    logger.setLevel(logging.NOTSET)
    _initialized = False


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the host logger, or its child ``name`` (e.g. "cli")."""
    return logger.getChild(name) if name else logger


def get_extension_logger(extension_name: str) -> logging.Logger:
    """Get the logger handed to an extension through its context."""
    return logging.getLogger(EXTENSION_LOGGER_PREFIX + extension_name)
