"""
Prometheus metrics for the build webhook.

This module provides metrics collection for admission decisions, webhook
registration and certificate provisioning, and the plain-HTTP server that
exposes them together with liveness and readiness probes.
"""

import logging
import time
from collections.abc import Callable
from contextlib import contextmanager

from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
    json_response,
)
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None

# Metrics definitions
ADMISSION_REQUESTS_TOTAL = Counter(
    "build_webhook_admission_requests_total",
    "Total number of admission requests by decision",
    ["kind", "operation", "result"],
    registry=None,  # Will be set during initialization
)

ADMISSION_DURATION = Histogram(
    "build_webhook_admission_duration_seconds",
    "Time spent computing admission decisions",
    ["kind"],
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
    registry=None,
)

PATCH_OPERATIONS_TOTAL = Counter(
    "build_webhook_patch_operations_total",
    "Total number of patch operations returned to the API server",
    ["kind"],
    registry=None,
)

REGISTRATION_TOTAL = Counter(
    "build_webhook_registration_total",
    "Webhook registration outcomes",
    ["result"],
    registry=None,
)

CERTIFICATE_PROVISIONING_TOTAL = Counter(
    "build_webhook_certificate_provisioning_total",
    "Serving certificate provisioning outcomes",
    ["result"],
    registry=None,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry

    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()

        for metric in [
            ADMISSION_REQUESTS_TOTAL,
            ADMISSION_DURATION,
            PATCH_OPERATIONS_TOTAL,
            REGISTRATION_TOTAL,
            CERTIFICATE_PROVISIONING_TOTAL,
        ]:
            _metrics_registry.register(metric)

    return _metrics_registry


class MetricsCollector:
    """Collects and manages metrics for the build webhook."""

    def __init__(self):
        """Initialize metrics collector."""
        self.registry = get_metrics_registry()

    @contextmanager
    def track_admission(self, kind: str):
        """
        Context manager timing a single admission decision.

        Args:
            kind: Kind of the admitted resource
        """
        start_time = time.perf_counter()
        try:
            yield
        finally:
            ADMISSION_DURATION.labels(kind=kind or "unknown").observe(
                time.perf_counter() - start_time
            )

    def record_decision(
        self, kind: str, operation: str, allowed: bool, patch_count: int = 0
    ) -> None:
        """Record the outcome of an admission decision."""
        kind = kind or "unknown"
        ADMISSION_REQUESTS_TOTAL.labels(
            kind=kind,
            operation=operation or "unknown",
            result="allowed" if allowed else "denied",
        ).inc()
        if patch_count:
            PATCH_OPERATIONS_TOTAL.labels(kind=kind).inc(patch_count)

    def record_registration(self, result: str) -> None:
        """Record a registration outcome (created, updated, unchanged, error)."""
        REGISTRATION_TOTAL.labels(result=result).inc()

    def record_certificate_provisioning(self, result: str) -> None:
        """Record a certificate provisioning outcome (existing, created, error)."""
        CERTIFICATE_PROVISIONING_TOTAL.labels(result=result).inc()


class MetricsServer:
    """HTTP server for exposing Prometheus metrics and probes."""

    def __init__(
        self,
        port: int = 9090,
        host: str = "0.0.0.0",
        ready_check: Callable[[], dict[str, bool]] | None = None,
    ):
        """
        Initialize metrics server.

        Args:
            port: Port to serve metrics on
            host: Host interface to bind to
            ready_check: Callable returning named readiness checks
        """
        self.port = port
        self.host = host
        self.ready_check = ready_check
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Set up HTTP routes for the metrics server."""
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/ready", self._ready_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            registry = get_metrics_registry()
            metrics_data = generate_latest(registry)
            # aiohttp rejects charset inside content_type, so pass the header verbatim
            return Response(
                body=metrics_data, headers={"Content-Type": CONTENT_TYPE_LATEST}
            )
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _ready_handler(self, request: Request) -> Response:
        """Handle /ready endpoint for readiness probes."""
        checks = self.ready_check() if self.ready_check else {}
        ready = bool(checks) and all(checks.values())
        return json_response(
            {
                "status": "ready" if ready else "not_ready",
                "timestamp": time.time(),
                "checks": checks,
            },
            status=200 if ready else 503,
        )

    async def _healthz_handler(self, request: Request) -> Response:
        """Handle /healthz endpoint for Kubernetes liveness probes."""
        return Response(text="ok")

    async def start(self) -> None:
        """Start the metrics server."""
        try:
            self.runner = AppRunner(self.app)
            await self.runner.setup()

            self.site = TCPSite(self.runner, self.host, self.port)
            await self.site.start()

            logger.info(f"Metrics server started on {self.host}:{self.port}")
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the metrics server."""
        if self.site:
            await self.site.stop()
            self.site = None

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        logger.info("Metrics server stopped")

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()


# Global metrics collector instance
metrics_collector = MetricsCollector()
