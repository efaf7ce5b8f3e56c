"""Structured logging utilities with correlation IDs, performance timing, and user id masking."""

import logging
import time
import uuid
import hashlib
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional, Dict

from presence_api.utils.logging_config import LoggingConfig, get_logger


# Correlation ID follows the asyncio task handling one interaction or request
_correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)


def generate_correlation_id(prefix: str = "req") -> str:
    """Generate a unique correlation ID for request tracing."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Set the correlation ID in context."""
    _correlation_id_var.set(correlation_id)


@contextmanager
def correlation_context(correlation_id: Optional[str] = None):
    """Context manager for correlation ID propagation."""
    if correlation_id is None:
        correlation_id = generate_correlation_id()

    old_id = get_correlation_id()
    set_correlation_id(correlation_id)
    try:
        yield correlation_id
    finally:
        set_correlation_id(old_id)


def mask_user_id(user_id: str) -> str:
    """Mask or hash user ID for privacy."""
    if not LoggingConfig.LOG_MASK_SENSITIVE or not user_id:
        return user_id

    # Discord snowflakes are 17-20 digits; keep a short stable fingerprint
    if len(user_id) > 12:
        hashed = hashlib.sha256(user_id.encode()).hexdigest()[:8]
        return f"{user_id[:4]}...{hashed}"
    return user_id


def sanitize_message_text(text: str, max_length: int = 200) -> Optional[str]:
    """Sanitize free text (task titles, notes) for logging."""
    if not LoggingConfig.LOG_MESSAGE_CONTENT:
        return None

    if not text:
        return None

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


class StructuredLogger:
    """Enhanced logger with structured logging support."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _get_extra(self, **kwargs: Any) -> Dict[str, Any]:
        """Build extra fields for structured logging."""
        extra = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            extra["correlation_id"] = correlation_id

        extra.update(kwargs)

        return extra

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message with structured fields."""
        self.logger.debug(message, extra=self._get_extra(**kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message with structured fields."""
        self.logger.info(message, extra=self._get_extra(**kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message with structured fields."""
        self.logger.warning(message, extra=self._get_extra(**kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message with structured fields."""
        self.logger.error(message, extra=self._get_extra(**kwargs), exc_info=exc_info)


def get_structured_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(get_logger(name))


@contextmanager
def log_timing(operation_name: str, logger: Optional[StructuredLogger] = None, **context: Any):
    """Context manager for timing operations."""
    if logger is None:
        logger = get_structured_logger(__name__)

    start_time = time.time()
    logger.debug(f"Starting {operation_name}", operation=operation_name, **context)

    try:
        yield
    finally:
        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Completed {operation_name}",
            operation=operation_name,
            processing_time_ms=round(elapsed_ms, 2),
            **context
        )

        if elapsed_ms > LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS:
            logger.warning(
                f"Slow operation detected: {operation_name}",
                operation=operation_name,
                processing_time_ms=round(elapsed_ms, 2),
                threshold_ms=LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS,
                **context
            )


def setup_logging() -> logging.Logger:
    """Set up structured logging and return the package logger."""
    LoggingConfig.setup_logging()
    return get_logger("presence_api")
