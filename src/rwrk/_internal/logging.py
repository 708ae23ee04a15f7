"""Structured logging setup for rwrk."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

from rwrk._internal.errors import ConfigError

_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class _JsonFormatter(logging.Formatter):
    """Structured JSON log formatter.

    Emits one-line JSON objects with keys: timestamp, level, logger, message.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def parse_log_level(name: str) -> int:
    """Translate a CLI log level name into a ``logging`` level.

    Args:
        name: Case-insensitive level name (trace, debug, info, warn, error).

    Returns:
        The matching ``logging`` level constant.

    Raises:
        ConfigError: If the name is not a known level.
    """
    try:
        return _LEVELS[name.strip().lower()]
    except KeyError:
        msg = f"Unknown log level: {name!r}. Choose from: {', '.join(sorted(_LEVELS))}"
        raise ConfigError(msg) from None


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the root rwrk logger.

    Sets up a handler on the ``rwrk`` logger namespace. Subsequent
    calls are idempotent and never duplicate handlers.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``). Defaults to INFO.
        json_format: If True, emit structured JSON logs. If False, emit
            human-readable logs.

    Returns:
        The configured ``rwrk`` root logger.
    """
    logger = logging.getLogger("rwrk")
    logger.setLevel(level)

    # Idempotent: update existing handler levels and return early
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Prevent propagation to root logger to avoid duplicate output
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``rwrk`` namespace.

    Args:
        name: Logger name, appended to ``rwrk.`` prefix.
            Example: ``get_logger("engine.worker")`` returns
            ``logging.getLogger("rwrk.engine.worker")``.

    Returns:
        A configured child logger.
    """
    return logging.getLogger(f"rwrk.{name}")
