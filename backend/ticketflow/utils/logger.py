"""Structured JSON Logging with Correlation and Tenant Context

Every record is one JSON object. The request's correlation id and the
authenticated tenant are taken from context variables, so repository
and engine code does not have to pass them along explicitly.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from ..config.settings import settings


correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
tenant_id_var: ContextVar[Optional[str]] = ContextVar("tenant_id", default=None)

# Record attributes copied into the JSON payload when present
EXTRA_FIELDS = (
    "ticket_id",
    "workflow_id",
    "transition_id",
    "tenant_id",
    "user_id",
    "action",
    "status",
    "notification_id",
    "error_code",
)

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line"""
    
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        
        correlation_id = getattr(record, "correlation_id", None) or correlation_id_var.get()
        if correlation_id:
            payload["correlation_id"] = correlation_id
        
        for field in EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        
        if "tenant_id" not in payload and tenant_id_var.get():
            payload["tenant_id"] = tenant_id_var.get()
        
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        
        return json.dumps(payload, default=str)


def _rotating_handler(logs_path: str, filename: str, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        os.path.join(logs_path, filename),
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8"
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """Send JSON logs to stdout, app.log and error.log"""
    logs_path = settings.logs_path
    os.makedirs(logs_path, exist_ok=True)
    
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root_logger.handlers.clear()
    
    formatter = JsonFormatter()
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    
    root_logger.addHandler(_rotating_handler(logs_path, "app.log", formatter))
    
    error_handler = _rotating_handler(logs_path, "error.log", formatter)
    error_handler.setLevel(logging.ERROR)
    root_logger.addHandler(error_handler)
    
    # Third-party chatter
    for name, level in (
        ("uvicorn", logging.INFO),
        ("uvicorn.access", logging.WARNING),
        ("httpx", logging.WARNING),
        ("pymongo", logging.WARNING),
        ("apscheduler", logging.WARNING),
    ):
        logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """Merges bound context (ticket, tenant, user) into every record"""
    
    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra", {}))
        kwargs["extra"] = extra
        return msg, kwargs


def get_context_logger(name: str, **context: Any) -> LoggerAdapter:
    """Logger that stamps the given fields on every line it writes"""
    return LoggerAdapter(logging.getLogger(name), context)


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


def set_tenant_id(tenant_id: Optional[str]) -> None:
    """Bind the authenticated tenant to the current request's log lines"""
    tenant_id_var.set(tenant_id)
