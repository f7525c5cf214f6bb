"""
Centralized logging for the Review Service.

Wraps the standard ``logging`` module with a structured interface:
- every entry carries service, environment and correlation ID
- free-form context goes in ``metadata``
- errors passed as ``error=`` are flattened to type + message
- JSON output for production, coloured console lines for development
"""

import json
import logging
import os
import sys
from datetime import datetime, UTC
from typing import Any, Dict, Optional, Union

from review_service.core.config import config
from review_service.utils.correlation_id import get_correlation_id

LOG_LEVEL = config.log_level.upper()
LOG_FORMAT = config.log_format.lower()

# Attributes every LogRecord has; anything else came in through ``extra``
_RESERVED_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class StructuredLogger:
    """
    Structured logger with correlation IDs.

    Usage:
        logger.info("Statistics stored", metadata={"productId": product_id})
        logger.error("Recompute failed", error=exc, metadata={...})
    """

    def __init__(self, name: str = config.service_name):
        self.service_name = config.service_name
        self.environment = config.environment
        self._logger = logging.getLogger(name)
        self._setup_logging()

    def _setup_logging(self):
        """Configure handlers once per process"""
        self._logger.handlers.clear()
        self._logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
        self._logger.propagate = False

        if config.log_to_console:
            console_handler = logging.StreamHandler(sys.stdout)
            if LOG_FORMAT == "json":
                console_handler.setFormatter(JSONFormatter())
            else:
                console_handler.setFormatter(ConsoleFormatter())
            self._logger.addHandler(console_handler)

        if config.log_to_file:
            log_dir = os.path.dirname(config.log_file_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(config.log_file_path)
            file_handler.setFormatter(JSONFormatter())  # Always JSON for files
            self._logger.addHandler(file_handler)

    def _build_log_entry(
        self,
        correlation_id: Optional[str],
        metadata: Optional[Dict[str, Any]],
        **kwargs,
    ) -> Dict[str, Any]:
        entry = {
            "service": self.service_name,
            "environment": self.environment,
            "correlationId": correlation_id or get_correlation_id(),
        }
        if metadata:
            entry["metadata"] = metadata
        entry.update(kwargs)
        return entry

    def _log(
        self,
        level: int,
        message: str,
        correlation_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        **kwargs,
    ):
        if not self._logger.isEnabledFor(level):
            return
        extra = self._build_log_entry(correlation_id, metadata, **kwargs)
        self._logger.log(level, message, extra=extra)

    @staticmethod
    def _with_error(
        metadata: Optional[Dict[str, Any]],
        error: Optional[Union[str, Exception]],
    ) -> Optional[Dict[str, Any]]:
        if not error:
            return metadata
        metadata = dict(metadata or {})
        if isinstance(error, Exception):
            metadata["error"] = {"type": type(error).__name__, "message": str(error)}
        else:
            metadata["error"] = {"message": str(error)}
        return metadata

    def debug(self, message: str, correlation_id: Optional[str] = None,
              metadata: Optional[Dict[str, Any]] = None, **kwargs):
        self._log(logging.DEBUG, message, correlation_id, metadata, **kwargs)

    def info(self, message: str, correlation_id: Optional[str] = None,
             metadata: Optional[Dict[str, Any]] = None, **kwargs):
        self._log(logging.INFO, message, correlation_id, metadata, **kwargs)

    def warning(self, message: str, correlation_id: Optional[str] = None,
                metadata: Optional[Dict[str, Any]] = None,
                error: Optional[Union[str, Exception]] = None, **kwargs):
        self._log(logging.WARNING, message, correlation_id,
                  self._with_error(metadata, error), **kwargs)

    def error(self, message: str, correlation_id: Optional[str] = None,
              metadata: Optional[Dict[str, Any]] = None,
              error: Optional[Union[str, Exception]] = None, **kwargs):
        self._log(logging.ERROR, message, correlation_id,
                  self._with_error(metadata, error), **kwargs)

    def critical(self, message: str, correlation_id: Optional[str] = None,
                 metadata: Optional[Dict[str, Any]] = None,
                 error: Optional[Union[str, Exception]] = None, **kwargs):
        self._log(logging.CRITICAL, message, correlation_id,
                  self._with_error(metadata, error), **kwargs)

    def performance(
        self,
        operation: str,
        duration_ms: int,
        threshold_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        **kwargs,
    ):
        """Log an operation duration, at WARNING when it exceeded its threshold"""
        metadata = dict(metadata or {})
        metadata.update({
            "operation": operation,
            "durationMs": duration_ms,
            "thresholdMs": threshold_ms,
        })
        level = logging.WARNING if threshold_ms and duration_ms > threshold_ms else logging.INFO
        self._log(level, f"Operation completed: {operation}", metadata=metadata, **kwargs)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS:
                log_data[key] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for development"""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')
        line = f"{color}[{timestamp}] {record.levelname}{reset} - {record.getMessage()}"
        metadata = getattr(record, "metadata", None)
        if metadata:
            line += f" {json.dumps(metadata, default=str)}"
        return line


# Create and export the logger instance
logger = StructuredLogger()
