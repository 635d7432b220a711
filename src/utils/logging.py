"""
Logging utilities for Lambda functions.

Provides structured JSON logging with correlation IDs for tracing requests
across API Gateway, AppSync and the Lambda handlers behind them.
"""

import contextvars
import json
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Set by bind() at handler entry; read by every module's logger.
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("correlation_id", default=None)


class StructuredLogger:
    """
    JSON logger for Lambda functions with correlation ID support.

    Example:
        logger = StructuredLogger(__name__)
        logger.info("Approved organization", organization_id="acme", approved_by="ops@example.com")
    """

    def __init__(self, name: str, correlation_id: Optional[str] = None) -> None:
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
        self._correlation_id = correlation_id
        self._fallback_id = str(uuid.uuid4())

    @property
    def correlation_id(self) -> str:
        """Pinned ID if one was given, else the ID bound for the current request."""
        return self._correlation_id or _correlation_id.get() or self._fallback_id

    def bind(self, event: Dict[str, Any]) -> "StructuredLogger":
        """Attach the correlation ID of an incoming Lambda event to all loggers."""
        self._correlation_id = None
        _correlation_id.set(get_correlation_id(event))
        return self

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        """Internal method to emit structured JSON logs."""
        if not self.logger.isEnabledFor(getattr(logging, level)):
            return

        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "logger": self.name,
            "message": message,
            "correlationId": self.correlation_id,
            **kwargs,
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        print(json.dumps(log_entry, default=str))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info level message."""
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning level message."""
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error level message."""
        self._log("ERROR", message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug level message."""
        self._log("DEBUG", message, **kwargs)


def get_logger(name: str) -> StructuredLogger:
    """Module-level logger; handlers rebind the correlation ID per invocation."""
    return StructuredLogger(name)


def get_correlation_id(event: Dict[str, Any]) -> str:
    """
    Extract or generate correlation ID from Lambda event.

    Checks for correlation ID in:
    1. event['requestContext']['requestId'] (API Gateway)
    2. event['headers']['x-correlation-id'] (API Gateway)
    3. event['request']['headers']['x-correlation-id'] (AppSync)
    4. Generates new UUID if not found
    """
    request_context = event.get("requestContext") or {}
    if "requestId" in request_context:
        return str(request_context["requestId"])

    headers = event.get("headers") or {}
    if "x-correlation-id" in headers:
        return str(headers["x-correlation-id"])

    headers = (event.get("request") or {}).get("headers") or {}
    if "x-correlation-id" in headers:
        return str(headers["x-correlation-id"])

    return str(uuid.uuid4())
