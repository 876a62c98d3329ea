"""Centralized webhook settings using pydantic-settings.

This module provides a single source of truth for all webhook configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Webhook configuration loaded from environment variables.

    All settings have sensible defaults for production use. Override via
    environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Deployment identification
    system_namespace: str = Field(
        default="knative-build",
        description="Namespace where the webhook is deployed",
        validation_alias="SYSTEM_NAMESPACE",
    )
    deployment_name: str = Field(
        default="build-webhook",
        description="Name of the deployment running the webhook (owner of the registration)",
        validation_alias="WEBHOOK_DEPLOYMENT_NAME",
    )
    service_name: str = Field(
        default="build-webhook",
        description="Name of the service routing admission traffic to the webhook",
        validation_alias="WEBHOOK_SERVICE_NAME",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )
    log_health_probes: bool = Field(
        default=False,
        validation_alias="LOG_HEALTH_PROBES",
        description="Log requests to health and metrics endpoints",
    )

    # Metrics and observability
    metrics_port: int = Field(
        default=9090,
        ge=0,
        le=65535,
        validation_alias="METRICS_PORT",
        description="Port for Prometheus metrics and health endpoints",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        validation_alias="METRICS_HOST",
        description="Host address to bind metrics server",
    )

    # Admission webhook server
    webhook_port: int = Field(
        default=8443,
        ge=0,
        le=65535,
        validation_alias="WEBHOOK_PORT",
        description="Port for admission webhook server",
    )
    webhook_host: str = Field(
        default="0.0.0.0",
        validation_alias="WEBHOOK_HOST",
        description="Host address to bind the admission webhook server",
    )
    webhook_cert_dir: str = Field(
        default="/tmp/build-webhook/serving-certs",
        validation_alias="WEBHOOK_CERT_DIR",
        description="Directory the serving certificate pair is written to",
    )
    webhook_require_client_cert: bool = Field(
        default=False,
        validation_alias="WEBHOOK_REQUIRE_CLIENT_CERT",
        description="Require and verify API server client certificates (mutual TLS)",
    )

    # Certificate secret
    secret_name: str = Field(
        default="build-webhook-certs",
        validation_alias="WEBHOOK_SECRET_NAME",
        description="Name of the secret holding the serving certificate material",
    )

    # Registration
    webhook_name: str = Field(
        default="webhook.build.knative.dev",
        validation_alias="WEBHOOK_NAME",
        description="Name of the MutatingWebhookConfiguration and its webhook entry",
    )
    registration_delay_seconds: float = Field(
        default=0.0,
        ge=0.0,
        validation_alias="WEBHOOK_REGISTRATION_DELAY_SECONDS",
        description="Delay between listener start and webhook registration",
    )
    failure_policy: Literal["Fail", "Ignore"] = Field(
        default="Fail",
        validation_alias="WEBHOOK_FAILURE_POLICY",
        description="How the API server treats webhook call failures",
    )
    webhook_timeout_seconds: int = Field(
        default=10,
        ge=1,
        le=30,
        validation_alias="WEBHOOK_TIMEOUT_SECONDS",
        description="API server timeout for admission calls",
    )
    registration_conflict_retries: int = Field(
        default=3,
        ge=1,
        validation_alias="REGISTRATION_CONFLICT_RETRIES",
        description="Attempts to update the registration when updates conflict",
    )
    deregister_on_shutdown: bool = Field(
        default=True,
        validation_alias="WEBHOOK_DEREGISTER_ON_SHUTDOWN",
        description="Delete the webhook registration when the server shuts down",
    )


# Global settings instance - initialized once at module import
settings = Settings()
