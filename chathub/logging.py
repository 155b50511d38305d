"""
Logging setup for the hub.

Records go to stdout in a readable one-line format. Errors are also
written as JSON lines to LOG_FILE_PATH, and shipped to Loki when
LOKI_ENABLED is set. Fields stored with `set_log_context()` (for example
the connection id of a hub session) are attached to every JSON record
emitted from the same context.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from typing import Any

from chathub.settings import app_settings

log_context: ContextVar[dict[str, Any] | None] = ContextVar(
    "log_context", default=None
)

# Attributes every LogRecord has, anything else was passed via `extra`
_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "correlation_id"}

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_correlation_id() -> str:
    from chathub.middlewares.correlation_id import correlation_id

    return correlation_id.get()


def set_log_context(**fields: Any) -> None:
    """
    Merge `fields` into the log context of the current request or session.

    Example:
        >>> set_log_context(connection_id="3f2c...")
        >>> logger.info("Client connected")
    """
    log_context.set({**get_log_context(), **fields})


def get_log_context() -> dict[str, Any]:
    return log_context.get() or {}


def clear_log_context() -> None:
    log_context.set(None)


class StructuredJSONFormatter(logging.Formatter):
    """One JSON object per record, with log context and `extra` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "environment": app_settings.ENVIRONMENT,
        }

        if cid := get_correlation_id():
            payload["request_id"] = cid

        payload.update(get_log_context())
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Console format with the correlation id in brackets.

    INFO records are kept short, other levels include the code location.
    """

    INFO_FMT = "%(asctime)s - [%(correlation_id)s] %(levelname)s: %(message)s"
    DETAILED_FMT = (
        "%(asctime)s - [%(correlation_id)s] %(levelname)s: "
        "%(module)s.%(funcName)s:%(lineno)d - %(message)s"
    )

    def __init__(self) -> None:
        super().__init__()
        self._info = logging.Formatter(self.INFO_FMT, DATE_FORMAT)
        self._detailed = logging.Formatter(self.DETAILED_FMT, DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = get_correlation_id() or "-"

        if record.levelno == logging.INFO:
            return self._info.format(record)
        return self._detailed.format(record)


def _file_handler(path: str) -> logging.Handler | None:
    try:
        if log_dir := os.path.dirname(path):
            os.makedirs(log_dir, exist_ok=True)
        handler = logging.FileHandler(path)
    except OSError as e:
        logging.getLogger().warning(f"Could not create file handler: {e}")
        return None

    handler.setLevel(logging.ERROR)
    handler.setFormatter(StructuredJSONFormatter())
    return handler


def _loki_handler() -> logging.Handler:
    from logging_loki import LokiHandler

    handler = LokiHandler(
        url=f"{app_settings.LOKI_URL}/loki/api/v{app_settings.LOKI_VERSION}/push",
        tags={"application": "chathub", "environment": app_settings.ENVIRONMENT},
        version=app_settings.LOKI_VERSION,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(StructuredJSONFormatter())
    return handler


def setup_logging() -> logging.Logger:
    """
    Configure the root logger from app_settings and return it.

    An empty LOG_FILE_PATH disables the error file. Logging is disabled
    while running under pytest.
    """
    logger = logging.getLogger()
    logger.setLevel(app_settings.LOG_LEVEL.upper())
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(HumanReadableFormatter())
    logger.addHandler(console_handler)

    if app_settings.LOG_FILE_PATH:
        if handler := _file_handler(app_settings.LOG_FILE_PATH):
            logger.addHandler(handler)

    if app_settings.LOKI_ENABLED:
        try:
            logger.addHandler(_loki_handler())
        except Exception as e:
            logger.warning(f"Could not configure Loki handler: {e}")
        else:
            logger.info("Loki handler configured successfully")

    if os.path.basename(sys.argv[0]) == "pytest":
        logging.disable(logging.ERROR)

    return logger


logger = setup_logging()
