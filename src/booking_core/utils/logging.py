"""Logging for the booking service.

Everything logs under the ``booking_core`` logger. Development gets one
readable line per record; production gets one JSON object per record so the
booking and status-change lines can be queried by doctor, path or code.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional

from booking_core.config import get_settings

ROOT_LOGGER = "booking_core"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_configured = False


class RequestIdFilter(logging.Filter):
    """Stamp every record with the id of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``extra_fields`` are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", "-"),
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "extra_fields", {}))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging() -> logging.Logger:
    """Attach a stdout handler to the ``booking_core`` logger (once per process)."""
    global _configured

    settings = get_settings()
    logger = logging.getLogger(ROOT_LOGGER)
    if _configured:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    if settings.is_production:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-7s %(name)s [%(request_id)s] %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    logger.handlers = [handler]
    logger.setLevel(settings.log_level)
    logger.propagate = False

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )

    _configured = True
    logger.info(
        f"Logging configured: level={settings.log_level} environment={settings.environment.value}"
    )
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def log_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: Optional[str] = None,
) -> None:
    """One access line per served request."""
    get_logger("http").info(
        f"{method} {path} {status_code} {duration_ms:.1f}ms",
        extra={
            "extra_fields": {
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            }
        },
    )


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an exception with its traceback and the request context it happened in."""
    get_logger("error").error(
        f"{type(error).__name__}: {error}",
        exc_info=error,
        extra={"extra_fields": {"error_type": type(error).__name__, **(context or {})}},
    )
