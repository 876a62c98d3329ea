#!/usr/bin/env python3
"""
Build webhook - Main entry point for the build.knative.dev admission webhook.

The webhook:
- Provisions its own serving certificates in a Kubernetes secret
- Serves AdmissionReview requests over HTTPS
- Registers itself as a MutatingWebhookConfiguration owned by its deployment
- Exposes Prometheus metrics and health probes on a plain HTTP port

Usage:
    build-webhook
    # Or:
    python -m build_webhook

Environment Variables:
    SYSTEM_NAMESPACE: Namespace the webhook runs in
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
    See build_webhook.settings for the full list.
"""

import asyncio
import logging
import signal
import sys

from build_webhook.errors import WebhookError
from build_webhook.observability.logging import setup_structured_logging
from build_webhook.observability.metrics import MetricsServer
from build_webhook.settings import Settings
from build_webhook.settings import settings as webhook_settings
from build_webhook.utils.kubernetes import get_kubernetes_client
from build_webhook.webhooks.build import build_handlers
from build_webhook.webhooks.pipeline import AdmissionPipeline
from build_webhook.webhooks.server import WebhookServer

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure structured logging for the webhook based on settings."""
    setup_structured_logging(
        log_level=settings.log_level.upper(),
        enable_json_formatting=settings.json_logs,
        correlation_id_enabled=settings.correlation_ids,
        log_health_probes=settings.log_health_probes,
    )


def install_signal_handlers(stop: asyncio.Event) -> None:
    """Set ``stop`` on SIGINT or SIGTERM."""
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)


async def serve(settings: Settings, stop: asyncio.Event | None = None) -> None:
    """
    Run the webhook until stopped.

    Args:
        settings: Webhook settings
        stop: Event ending the run; signal handlers set it when not given
    """
    if stop is None:
        stop = asyncio.Event()
        install_signal_handlers(stop)

    k8s_client = get_kubernetes_client()
    pipeline = AdmissionPipeline(build_handlers())
    server = WebhookServer(settings, k8s_client, pipeline)

    metrics_server = MetricsServer(
        port=settings.metrics_port,
        host=settings.metrics_host,
        ready_check=server.readiness,
    )
    await metrics_server.start()
    logger.info(
        f"Metrics and health endpoints available on {settings.metrics_host}:{settings.metrics_port}"
    )
    try:
        await server.run(stop)
    finally:
        await metrics_server.stop()


def main() -> None:
    """Main entry point for the webhook."""
    configure_logging(webhook_settings)
    logger.info(f"Starting build webhook in namespace {webhook_settings.system_namespace}")

    try:
        asyncio.run(serve(webhook_settings))
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    except WebhookError as e:
        logger.error(f"Webhook failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Webhook failed with error: {e}", exc_info=True)
        sys.exit(1)

    logger.info("Build webhook stopped")


if __name__ == "__main__":
    main()
