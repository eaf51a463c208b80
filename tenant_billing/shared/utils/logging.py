# 📄 File: tenant_billing/shared/utils/logging.py

# 🧭 Purpose (Layman Explanation):
# This file sets up a smart logging system that records what the billing service does in a structured way,
# so that every reminder, charge, downgrade and paused campaign can be traced back to the sweep that did it.

# 🧪 Purpose (Technical Summary):
# Implements structured logging with JSON formatting (python-json-logger), contextual information
# (sweep id, tenant id, correlation id) carried through contextvars, external API call timing and
# business event logging for billing observability.

# 🔗 Dependencies:
# - python-json-logger: JSON log formatting
# - logging: Python standard logging
# - contextvars: Sweep / request context tracking

# 🔄 Connected Modules / Calls From:
# Used by: renewal engine, entitlement enforcer, scheduler, payment gateway adapter,
# Celery tasks and the FastAPI application factory

import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional
from uuid import uuid4

from pythonjsonlogger import jsonlogger

from tenant_billing.shared.config.settings import get_settings

SERVICE_NAME = "tenant-billing"

# Context variables for sweep tracking
sweep_id_var: ContextVar[str] = ContextVar('sweep_id', default='')
tenant_id_var: ContextVar[str] = ContextVar('tenant_id', default='')
correlation_id_var: ContextVar[str] = ContextVar('correlation_id', default='')

# Global logging configuration
_logging_configured = False
_loggers_cache: Dict[str, "StructuredLogger"] = {}


def _hostname() -> str:
    return os.uname().nodename if hasattr(os, 'uname') else 'unknown'


class ContextualFormatter(logging.Formatter):
    """
    Plain-text formatter that adds contextual information to log records.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.hostname = _hostname()

    def format(self, record):
        record.sweep_id = sweep_id_var.get('')
        record.tenant_id = tenant_id_var.get('')
        record.correlation_id = correlation_id_var.get('')
        record.hostname = self.hostname
        record.service = SERVICE_NAME
        record.timestamp = datetime.now(timezone.utc).isoformat()
        return super().format(record)


class JSONFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per record with a consistent envelope
    (service, host, sweep context) for log aggregation tools.
    """

    def __init__(self):
        super().__init__(json_ensure_ascii=False)
        self.hostname = _hostname()

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno
        log_record['service'] = SERVICE_NAME
        log_record['hostname'] = self.hostname

        if sweep_id_var.get():
            log_record['sweep_id'] = sweep_id_var.get()
        if tenant_id_var.get():
            log_record['tenant_id'] = tenant_id_var.get()
        if correlation_id_var.get():
            log_record['correlation_id'] = correlation_id_var.get()

        # StructuredLogger nests its fields under extra_fields
        extra_fields = log_record.pop('extra_fields', None)
        if extra_fields:
            log_record['extra'] = extra_fields


class PerformanceLogger:
    """
    Logger for tracking timing of outbound calls.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def log_external_api_call(
        self,
        api_name: str,
        endpoint: str,
        method: str,
        status_code: int,
        duration_ms: float,
        success: bool,
        extra: Dict = None
    ):
        """Log external API call performance."""
        extra_fields = {
            'event_type': 'external_api_call',
            'api_name': api_name,
            'endpoint': endpoint,
            'method': method,
            'status_code': status_code,
            'duration_ms': duration_ms,
            'success': success,
            **(extra or {})
        }

        level = logging.INFO if success else logging.WARNING
        self.logger.log(
            level,
            f"API {api_name} {method} {endpoint} - {status_code} - {duration_ms:.2f}ms",
            extra={'extra_fields': extra_fields}
        )


class StructuredLogger:
    """
    Enhanced logger with structured logging capabilities.

    Provides methods for logging different types of events with
    consistent structure and contextual information.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.performance = PerformanceLogger(self.logger)

    def debug(self, message: str, extra: Dict = None, **kwargs):
        """Log debug message with extra fields."""
        self._log(logging.DEBUG, message, extra, **kwargs)

    def info(self, message: str, extra: Dict = None, **kwargs):
        """Log info message with extra fields."""
        self._log(logging.INFO, message, extra, **kwargs)

    def warning(self, message: str, extra: Dict = None, **kwargs):
        """Log warning message with extra fields."""
        self._log(logging.WARNING, message, extra, **kwargs)

    def error(self, message: str, extra: Dict = None, exc_info: bool = False, **kwargs):
        """Log error message with extra fields."""
        self._log(logging.ERROR, message, extra, exc_info=exc_info, **kwargs)

    def critical(self, message: str, extra: Dict = None, exc_info: bool = False, **kwargs):
        """Log critical message with extra fields."""
        self._log(logging.CRITICAL, message, extra, exc_info=exc_info, **kwargs)

    def _log(self, level: int, message: str, extra: Dict = None, **kwargs):
        """Internal log method with extra fields handling."""
        extra_fields = dict(extra or {})

        for key, value in kwargs.items():
            if key not in ['exc_info', 'stack_info', 'stacklevel']:
                extra_fields[key] = value

        clean_kwargs = {k: v for k, v in kwargs.items()
                        if k in ['exc_info', 'stack_info', 'stacklevel']}

        if extra_fields:
            clean_kwargs['extra'] = {'extra_fields': extra_fields}

        self.logger.log(level, message, **clean_kwargs)

    def log_business_event(
        self,
        event_type: str,
        description: str,
        entity_id: str = None,
        entity_type: str = None,
        extra: Dict = None
    ):
        """Log business events (renewals, downgrades, pauses) for analytics."""
        extra_fields = {
            'event_type': 'business_event',
            'business_event_type': event_type,
            'description': description,
            **(extra or {})
        }

        if entity_id:
            extra_fields['entity_id'] = entity_id
        if entity_type:
            extra_fields['entity_type'] = entity_type

        self.info(description, extra=extra_fields)


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
    enable_console: bool = True
) -> logging.Logger:
    """
    Setup application logging configuration.

    Args:
        log_level: Override for LOG_LEVEL
        log_format: 'json' or 'text', overrides LOG_FORMAT
        log_file: Optional file path, overrides LOG_FILE
        enable_console: Attach a stdout handler

    Returns:
        logging.Logger: the 'startup' logger
    """
    global _logging_configured

    if _logging_configured:
        return logging.getLogger("startup")

    settings = get_settings()
    log_level = log_level or settings.LOG_LEVEL
    log_format = log_format or settings.LOG_FORMAT
    log_file = log_file or settings.LOG_FILE

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format.lower() == 'json':
        formatter = JSONFormatter()
    else:
        formatter = ContextualFormatter(
            '%(timestamp)s - %(name)s - %(levelname)s - [%(sweep_id)s] %(message)s'
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger('aiohttp').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    _logging_configured = True
    return logging.getLogger("startup")


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        StructuredLogger instance
    """
    if name in _loggers_cache:
        return _loggers_cache[name]

    logger = StructuredLogger(name)
    _loggers_cache[name] = logger

    return logger


@contextmanager
def log_context(
    sweep_id: Optional[str] = None,
    tenant_id: Optional[str] = None,
    correlation_id: Optional[str] = None
):
    """
    Context manager for adding sweep / tenant information to logs.

    Args:
        sweep_id: Sweep identifier (generated when omitted)
        tenant_id: Tenant currently being processed
        correlation_id: Correlation identifier (Celery task id, HTTP request id)
    """
    if sweep_id is None:
        sweep_id = sweep_id_var.get('') or str(uuid4())

    sweep_token = sweep_id_var.set(sweep_id)
    tenant_token = tenant_id_var.set(tenant_id or '')
    correlation_token = correlation_id_var.set(correlation_id or correlation_id_var.get(''))

    try:
        yield {
            'sweep_id': sweep_id,
            'tenant_id': tenant_id,
            'correlation_id': correlation_id
        }
    finally:
        sweep_id_var.reset(sweep_token)
        tenant_id_var.reset(tenant_token)
        correlation_id_var.reset(correlation_token)


def log_startup_event(service_name: str, version: str, extra: Dict = None):
    """Log application startup event."""
    logger = get_logger('startup')
    logger.info(
        f"Service {service_name} starting up",
        extra={
            'event_type': 'service_startup',
            'service_name': service_name,
            'version': version,
            **(extra or {})
        }
    )


def log_shutdown_event(service_name: str, extra: Dict = None):
    """Log application shutdown event."""
    logger = get_logger('shutdown')
    logger.info(
        f"Service {service_name} shutting down",
        extra={
            'event_type': 'service_shutdown',
            'service_name': service_name,
            **(extra or {})
        }
    )
