"""
Observability utilities for the build webhook.

This module provides metrics, probes, and structured logging
capabilities for production monitoring and troubleshooting.
"""

from .logging import WebhookLogger, setup_structured_logging
from .metrics import MetricsServer, get_metrics_registry, metrics_collector

__all__ = [
    "MetricsServer",
    "get_metrics_registry",
    "metrics_collector",
    "WebhookLogger",
    "setup_structured_logging",
]
