"""
GDGoC Certificates - Logging

Every log line carries the request id and, once the identity proxy headers
have been read, the caller's ocid and organization. Production writes one
JSON object per line; other environments get a readable text format.
"""

import logging
import sys
import json
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional, Sequence
from contextvars import ContextVar

from gdgoc_certs.core.config import settings


request_id_var: ContextVar[str] = ContextVar('request_id', default='')
caller_var: ContextVar[str] = ContextVar('caller_ocid', default='')
org_var: ContextVar[str] = ContextVar('org_name', default='')

# Attributes every LogRecord carries; anything else was passed through `extra`
_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'message', 'taskName', 'request_id', 'caller', 'org',
}


def get_request_id() -> str:
    return request_id_var.get() or ''


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_caller() -> str:
    """ocid of the issuer behind the current request"""
    return caller_var.get() or ''


def set_caller(ocid: str, org_name: Optional[str] = None) -> None:
    caller_var.set(ocid)
    org_var.set(org_name or '')


def get_org() -> str:
    return org_var.get() or ''


def clear_context() -> None:
    request_id_var.set('')
    caller_var.set('')
    org_var.set('')


def generate_request_id() -> str:
    return str(uuid.uuid4())[:8]


class JSONFormatter(logging.Formatter):
    """One JSON object per line for the log shipper"""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        for key, value in (("request_id", get_request_id()), ("ocid", get_caller()), ("org_name", get_org())):
            if value:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info) if record.exc_info[0] else None
            }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ContextualFormatter(logging.Formatter):
    """Text formatter exposing %(request_id)s, %(caller)s and %(org)s"""

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or '-'
        record.caller = get_caller() or 'anonymous'
        org = get_org()
        record.org = f"@{org}" if org else ''
        return super().format(record)


class CertsLogger(logging.Logger):
    """Logger with the service's structured events"""

    def log_auth_event(self, event: str, success: bool, user_email: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        """identify / provision / login outcomes for an issuer"""
        level = logging.INFO if success else logging.WARNING
        self.log(
            level,
            f"Auth {event}: {'success' if success else 'failed'}" +
            (f" - {user_email}" if user_email else "") +
            (f" - {reason}" if reason else ""),
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "user_email": user_email,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_issuance(self, ocid: str, org_name: str, unique_ids: Sequence[str],
                     mode: str = "single", failed: int = 0) -> None:
        """Certificates written for one request; mode is "single" or "bulk" """
        if mode == "single" and unique_ids:
            message = f"[Certificates] Issued {unique_ids[0]} by {ocid} ({org_name})"
        else:
            message = (
                f"[Certificates] Bulk issue by {ocid} ({org_name}): "
                f"{len(unique_ids)}/{len(unique_ids) + failed} created, {failed} failed"
            )
        self.info(
            message,
            extra={
                "event_type": "certificate_issued",
                "issue_mode": mode,
                "issuer_ocid": ocid,
                "issuer_org": org_name,
                "certificate_ids": list(unique_ids),
                "issued_count": len(unique_ids),
                "failed_count": failed,
            }
        )

    def log_notification(self, unique_id: str, status: str, error: Optional[str] = None) -> None:
        """Outcome of one recipient email; failures are warnings, never errors to the caller"""
        level = logging.WARNING if error else logging.INFO
        self.log(
            level,
            f"[Notify] {unique_id}: {status}" + (f" - {error}" if error else ""),
            extra={
                "event_type": "certificate_notification",
                "certificate_id": unique_id,
                "notification_status": status,
                "notification_error": error,
            }
        )

    def log_error_with_context(self, error: Exception, context: Optional[str] = None,
                               **kwargs) -> None:
        self.error(
            f"Error in {context}: {type(error).__name__}: {str(error)}",
            exc_info=True,
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_message": str(error),
                "error_context": context,
                **kwargs
            }
        )


def setup_logging() -> CertsLogger:
    logging.setLoggerClass(CertsLogger)

    logger = logging.getLogger("gdgoc_certs")
    logger.__class__ = CertsLogger  # Ensure it's our custom class
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    logger.handlers.clear()

    if settings.is_production:
        formatter: logging.Formatter = JSONFormatter()
        file_formatter: logging.Formatter = formatter
    else:
        formatter = ContextualFormatter("%(levelname)-8s | [%(request_id)s] %(caller)s%(org)s | %(message)s")
        file_formatter = ContextualFormatter(
            "%(asctime)s | %(levelname)-8s | [%(request_id)s] %(caller)s%(org)s | "
            "%(module)s:%(lineno)d | %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        log_file = Path(settings.LOG_FILE)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10485760,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # SMTP conversations and SQL are only interesting when debugging
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosmtplib").setLevel(logging.WARNING)

    return logger


logger: CertsLogger = setup_logging()


__all__ = [
    'logger',
    'setup_logging',
    'get_request_id',
    'set_request_id',
    'get_caller',
    'set_caller',
    'get_org',
    'clear_context',
    'generate_request_id',
    'CertsLogger',
]
