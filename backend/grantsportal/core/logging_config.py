"""
Research Grants Portal - Logging

One ``grantsportal`` logger for the whole application. Development prints a
short readable line per record; production prints one JSON object per line.
Each record carries the request id and the authenticated user id of the
request that produced it.
"""

import logging
import sys
import json
import traceback
import uuid
from datetime import datetime
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from grantsportal.core.config import settings


request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')

# LogRecord attributes that are not copied into JSON output as extras
_STANDARD_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {
    'message', 'asctime', 'taskName', 'request_id', 'user_id',
}

NOISY_LOGGERS = ("httpx", "uvicorn.access", "sqlalchemy.engine", "aiosqlite", "aiosmtplib")
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024


def get_request_id() -> str:
    return request_id_var.get() or ''


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    return user_id_var.get() or ''


def set_user_id(user_id: str) -> None:
    """Attach the authenticated user to every record logged for this request"""
    user_id_var.set(user_id)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shipping in production"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if get_request_id():
            entry["request_id"] = get_request_id()
        if get_user_id():
            entry["user_id"] = get_user_id()

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        entry.update({
            key: value for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith('_')
        })
        return json.dumps(entry, default=str)


class ContextualFormatter(logging.Formatter):
    """Plain text with ``[request] [user]`` columns"""

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or '-'
        record.user_id = get_user_id() or '-'
        return super().format(record)


class GrantsPortalLogger(logging.Logger):
    """Logger with helpers for the events the portal reports on"""

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        self.log(
            level,
            f"{method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": round(duration_ms, 2),
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, user_email: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        """Login, registration, refresh and logout outcomes"""
        message = f"[Auth] {event} {'succeeded' if success else 'failed'}"
        if user_email:
            message += f" for {user_email}"
        if reason:
            message += f": {reason}"
        self.log(
            logging.INFO if success else logging.WARNING,
            message,
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "user_email": user_email,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_activity_failure(self, action: str, error: Exception,
                             target_type: Optional[str] = None,
                             target_id: Optional[str] = None) -> None:
        """An activity log entry could not be written"""
        self.warning(
            f"[ActivityLog] Failed to record {action}: {error}",
            extra={
                "event_type": "activity_log_failed",
                "activity_action": action,
                "target_type": target_type,
                "target_id": target_id,
                "error_type": type(error).__name__,
            }
        )

    def log_upload(self, category: str, original_name: str, stored_name: str, size: int) -> None:
        self.info(
            f"[Storage] Stored {original_name} as {category}/{stored_name} ({size} bytes)",
            extra={
                "event_type": "file_upload",
                "upload_category": category,
                "stored_name": stored_name,
                "size_bytes": size,
            }
        )


def _build_file_handler(formatter: logging.Formatter, backup_count: int) -> RotatingFileHandler:
    log_file = Path(settings.LOG_FILE)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=backup_count)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> GrantsPortalLogger:
    """Configure the ``grantsportal`` logger for the current environment"""
    logging.setLoggerClass(GrantsPortalLogger)

    logger = logging.getLogger("grantsportal")
    logger.__class__ = GrantsPortalLogger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers.clear()
    logger.propagate = False

    if settings.is_production:
        console_formatter: logging.Formatter = JSONFormatter()
        file_formatter: logging.Formatter = console_formatter
    else:
        console_formatter = ContextualFormatter("%(levelname)-8s | [%(request_id)s] %(message)s")
        file_formatter = ContextualFormatter(
            "%(asctime)s | %(levelname)-8s | [%(request_id)s] [%(user_id)s] | "
            "%(module)s:%(lineno)d | %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        logger.addHandler(_build_file_handler(file_formatter, 10 if settings.is_production else 5))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug(f"Logging initialized for {settings.ENVIRONMENT} at {settings.LOG_LEVEL}")
    return logger


logger: GrantsPortalLogger = setup_logging()


__all__ = [
    'logger',
    'setup_logging',
    'get_request_id',
    'set_request_id',
    'get_user_id',
    'set_user_id',
    'generate_request_id',
    'GrantsPortalLogger',
    'JSONFormatter',
]
