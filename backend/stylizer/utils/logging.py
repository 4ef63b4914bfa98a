"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- user_id
- style
- duration_ms

Usage:
    from stylizer.utils.logging import configure_logging, log_transformation_recorded

    configure_logging('stylizer-api', 'INFO')
    log_transformation_recorded(logger, user_id='abc', used=3, maximum=6)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (stylizer-api)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    user_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        user_id: Optional Firebase uid
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if user_id:
        extra["user_id"] = user_id
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Usage event functions

def log_transformation_recorded(
    logger: logging.Logger,
    user_id: str,
    used: int,
    maximum: int,
    kind: str = "image_transform",
    **kwargs
):
    """Log a transformation charged against the user's quota."""
    extra = _build_log_extra(
        event="transformation_recorded",
        user_id=user_id,
        transformations_used=used,
        max_transformations=maximum,
        kind=kind,
        **kwargs
    )
    logger.info(f"User {user_id} used transformation {used}/{maximum}", extra=extra)


def log_quota_exceeded(
    logger: logging.Logger,
    user_id: str,
    used: int,
    maximum: int,
    stage: str,
    **kwargs
):
    """
    Log a rejected request.

    Args:
        logger: Logger instance
        user_id: Firebase uid (required)
        used: Current counter value
        maximum: Quota size
        stage: "gate" when rejected before the provider call,
            "record" when the increment lost a race
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="quota_exceeded",
        user_id=user_id,
        transformations_used=used,
        max_transformations=maximum,
        stage=stage,
        **kwargs
    )
    logger.warning(f"Transformation limit reached for user {user_id} ({used}/{maximum})", extra=extra)


def log_usage_reset(logger: logging.Logger, user_id: str, **kwargs):
    extra = _build_log_extra(event="usage_reset", user_id=user_id, **kwargs)
    logger.info(f"Reset usage for user {user_id}", extra=extra)


# Provider event functions

def log_provider_request(
    logger: logging.Logger,
    provider: str,
    operation: str,
    duration_ms: Optional[float] = None,
    user_id: Optional[str] = None,
    **kwargs
):
    """
    Log image provider request event.

    Args:
        logger: Logger instance
        provider: Provider name (gemini) (required)
        operation: Operation name (transform_image) (required)
        duration_ms: Optional duration in milliseconds
        user_id: Optional Firebase uid
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="provider_request",
        user_id=user_id,
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        **kwargs
    )

    logger.info(f"Provider request: {provider}.{operation}", extra=extra)


def log_provider_failure(
    logger: logging.Logger,
    provider: str,
    operation: str,
    error: str,
    duration_ms: Optional[float] = None,
    user_id: Optional[str] = None,
    include_traceback: bool = False,
    **kwargs
):
    """
    Log image provider failure event.

    Stack traces are optional here, provider failures are usually
    timeouts or empty responses.
    """
    extra = _build_log_extra(
        event="provider_failure",
        user_id=user_id,
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        error=str(error),
        **kwargs
    )

    message = f"Provider failure: {provider}.{operation} - {error}"

    if include_traceback and sys.exc_info()[0] is not None:
        logger.error(message, extra=extra, exc_info=True)
    else:
        logger.error(message, extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
