"""
Structured logging utilities for the build webhook.

This module provides correlation ID tracking (keyed by the admission request
UID), structured JSON log formatting, and helpers for logging admission and
registration events.
"""

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variable for tracking correlation IDs across async operations
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

# Paths that should be filtered from access logs (health probes)
HEALTH_PROBE_PATHS = frozenset({"/healthz", "/ready", "/metrics"})

# Extra record attributes copied into structured output
STRUCTURED_FIELDS = (
    "kind",
    "namespace",
    "resource_name",
    "operation",
    "uid",
    "allowed",
    "patch_count",
    "duration",
    "error_type",
    "webhook_name",
    "result",
    "user",
)


class HealthProbeFilter(logging.Filter):
    """
    Logging filter that suppresses health probe and metrics endpoint logs.

    These endpoints are hit frequently by Kubernetes probes and monitoring
    systems, generating excessive noise in logs during debugging.
    """

    def __init__(self, suppress_health_logs: bool = True):
        super().__init__()
        self.suppress_health_logs = suppress_health_logs

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.suppress_health_logs:
            return True

        message = record.getMessage()
        return all(path not in message for path in HEALTH_PROBE_PATHS)


class CorrelationIDFilter(logging.Filter):
    """Logging filter that adds correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        current_correlation_id = correlation_id.get()
        if not current_correlation_id:
            current_correlation_id = generate_correlation_id()
            correlation_id.set(current_correlation_id)

        record.correlation_id = current_correlation_id
        return True


class StructuredFormatter(logging.Formatter):
    """
    Structured JSON formatter for logs with correlation ID support.

    Formats log records as structured JSON for better parsing and analysis
    in production monitoring systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record as structured JSON.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted log message
        """
        log_data = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", ""),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data, default=str)


def generate_correlation_id() -> str:
    """
    Generate a new correlation ID.

    Returns:
        Unique correlation ID string
    """
    return str(uuid.uuid4())[:8]  # Short 8-character ID for readability


def set_correlation_id(corr_id: str) -> str:
    """
    Set the correlation ID for the current context.

    Args:
        corr_id: Correlation ID to set

    Returns:
        The correlation ID that was set
    """
    correlation_id.set(corr_id)
    return corr_id


def get_correlation_id() -> str:
    """Get the current correlation ID, or empty string if none set."""
    return correlation_id.get("")


def setup_structured_logging(
    log_level: str = "INFO",
    enable_json_formatting: bool = True,
    correlation_id_enabled: bool = True,
    log_health_probes: bool = False,
) -> None:
    """
    Set up structured logging for the webhook.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_json_formatting: Whether to use JSON formatting
        correlation_id_enabled: Whether to enable correlation ID tracking
        log_health_probes: Whether to log health probe requests (default: False)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()

    if enable_json_formatting:
        formatter = StructuredFormatter()
    elif correlation_id_enabled:
        formatter = logging.Formatter(
            "%(asctime)s - %(correlation_id)s - %(name)s - %(levelname)s - %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)

    if correlation_id_enabled:
        handler.addFilter(CorrelationIDFilter())

    if not log_health_probes:
        handler.addFilter(HealthProbeFilter(suppress_health_logs=True))

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Third-party libraries are chatty at INFO
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.server").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.web").setLevel(logging.WARNING)


class WebhookLogger:
    """
    Logger for admission and registration events with structured fields.

    Provides convenient methods for logging common webhook events with
    proper correlation ID tracking and structured data.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def log_admission_request(
        self,
        uid: str,
        kind: str,
        namespace: str,
        name: str,
        operation: str,
        user: str | None = None,
    ) -> str:
        """
        Log an incoming admission request and bind its UID as correlation ID.

        Returns:
            The correlation ID used for this request
        """
        set_correlation_id(uid or generate_correlation_id())
        self.logger.info(
            f"Admission request for {kind} {namespace}/{name} ({operation})",
            extra={
                "uid": uid,
                "kind": kind,
                "namespace": namespace,
                "resource_name": name,
                "operation": operation,
                "user": user,
            },
        )
        return get_correlation_id()

    def log_admission_decision(
        self,
        kind: str,
        namespace: str,
        name: str,
        allowed: bool,
        patch_count: int = 0,
        message: str | None = None,
        duration: float | None = None,
    ) -> None:
        """Log the decision returned for an admission request."""
        level = logging.INFO if allowed else logging.WARNING
        verdict = "allowed" if allowed else f"denied: {message}"
        extra = {
            "kind": kind,
            "namespace": namespace,
            "resource_name": name,
            "allowed": allowed,
            "patch_count": patch_count,
        }
        if duration is not None:
            extra["duration"] = duration
        self.logger.log(
            level, f"AdmissionReview for {kind} {namespace}/{name} {verdict}", extra=extra
        )

    def log_registration(
        self, webhook_name: str, result: str, error: Exception | None = None
    ) -> None:
        """Log a webhook registration outcome."""
        if error is None:
            self.logger.info(
                f"Webhook {webhook_name} registration: {result}",
                extra={"webhook_name": webhook_name, "result": result},
            )
        else:
            self.logger.error(
                f"Webhook {webhook_name} registration failed: {error}",
                extra={
                    "webhook_name": webhook_name,
                    "result": result,
                    "error_type": type(error).__name__,
                },
            )
