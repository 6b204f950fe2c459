from __future__ import annotations

import json
import logging
import os
import sys

ROOT_LOGGER = "somnus"
LEVEL_ENV = "SOMNUS_LOG_LEVEL"

# LogRecord attributes that are not user-supplied ``extra`` fields
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra=`` fields are carried through."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": record.created,
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (k, v) for k, v in vars(record).items() if k not in _RESERVED
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(
    level: str | None = None,
    json_output: bool = False,
    default: str = "INFO",
) -> logging.Logger:
    """Configure and return the root somnus logger.

    Without an explicit *level*, ``$SOMNUS_LOG_LEVEL`` is used, then
    *default*. Calling again only adjusts the level; the handler is
    installed once.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    level = level or os.environ.get(LEVEL_ENV) or default
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        ))

    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger under the somnus namespace (``somnus.<name>``)."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
