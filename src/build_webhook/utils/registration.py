"""
MutatingWebhookConfiguration registration.

The webhook registers itself with the API server at startup. The
configuration is owned by the webhook deployment so that Kubernetes garbage
collects it when the deployment goes away.
"""

import asyncio
import base64
import logging
from typing import Any

from kubernetes import client
from kubernetes.client.rest import ApiException

from ..constants import (
    ADMISSION_REVIEW_VERSIONS,
    ADMITTED_OPERATIONS,
    BUILD_API_GROUP,
    BUILD_API_VERSION,
    BUILD_RESOURCES,
)
from ..errors import KubernetesAPIError, RegistrationConflictError
from ..observability.logging import WebhookLogger
from ..observability.metrics import metrics_collector

logger = logging.getLogger(__name__)
webhook_logger = WebhookLogger(__name__)

SERVICE_PORT = 443
SERVICE_PATH = "/"


def build_registration(
    name: str,
    service_name: str,
    namespace: str,
    ca_cert: bytes,
    owner_reference: client.V1OwnerReference,
    failure_policy: str = "Fail",
    timeout_seconds: int = 10,
) -> client.V1MutatingWebhookConfiguration:
    """
    Build the desired webhook configuration.

    Args:
        name: Name of the configuration and of its single webhook entry
        service_name: Service routing admission traffic to the webhook
        namespace: Namespace of the service
        ca_cert: PEM encoded CA the API server uses to verify the webhook
        owner_reference: Owner reference to the webhook deployment
        failure_policy: Fail or Ignore
        timeout_seconds: API server timeout for admission calls

    Returns:
        MutatingWebhookConfiguration object
    """
    rule = client.V1RuleWithOperations(
        api_groups=[BUILD_API_GROUP],
        api_versions=[BUILD_API_VERSION],
        operations=list(ADMITTED_OPERATIONS),
        resources=list(BUILD_RESOURCES),
    )
    webhook = client.V1MutatingWebhook(
        name=name,
        admission_review_versions=list(ADMISSION_REVIEW_VERSIONS),
        side_effects="None",
        failure_policy=failure_policy,
        timeout_seconds=timeout_seconds,
        rules=[rule],
        client_config=client.AdmissionregistrationV1WebhookClientConfig(
            service=client.AdmissionregistrationV1ServiceReference(
                name=service_name,
                namespace=namespace,
                path=SERVICE_PATH,
                port=SERVICE_PORT,
            ),
            ca_bundle=base64.b64encode(ca_cert).decode("ascii"),
        ),
    )
    return client.V1MutatingWebhookConfiguration(
        api_version="admissionregistration.k8s.io/v1",
        kind="MutatingWebhookConfiguration",
        metadata=client.V1ObjectMeta(name=name, owner_references=[owner_reference]),
        webhooks=[webhook],
    )


def is_subset(desired: Any, actual: Any) -> bool:
    """
    Check that every field set in ``desired`` has the same value in ``actual``.

    Fields the API server defaults (and ``actual`` therefore carries in
    addition) do not count as differences. Lists must match element-wise.
    """
    if isinstance(desired, dict):
        if not isinstance(actual, dict):
            return False
        return all(
            key in actual and is_subset(value, actual[key])
            for key, value in desired.items()
        )
    if isinstance(desired, list):
        if not isinstance(actual, list) or len(desired) != len(actual):
            return False
        return all(is_subset(d, a) for d, a in zip(desired, actual, strict=True))
    return desired == actual


class RegistrationReconciler:
    """Creates, converges and removes the webhook configuration."""

    def __init__(
        self, k8s_client: client.ApiClient | None = None, conflict_retries: int = 3
    ):
        """
        Initialize registration reconciler.

        Args:
            k8s_client: Optional Kubernetes API client
            conflict_retries: Update attempts before a conflict is fatal
        """
        self.k8s_client = k8s_client
        self.conflict_retries = max(1, conflict_retries)
        self._api: client.AdmissionregistrationV1Api | None = None
        self._serializer = client.ApiClient()

    @property
    def api(self) -> client.AdmissionregistrationV1Api:
        """Get AdmissionregistrationV1Api client."""
        if self._api is None:
            if self.k8s_client:
                self._api = client.AdmissionregistrationV1Api(self.k8s_client)
            else:
                self._api = client.AdmissionregistrationV1Api()
        return self._api

    def configuration_matches(
        self,
        desired: client.V1MutatingWebhookConfiguration,
        existing: client.V1MutatingWebhookConfiguration,
    ) -> bool:
        """Compare the webhook entries and owner references of two configurations."""
        serialize = self._serializer.sanitize_for_serialization
        return is_subset(
            serialize(desired.webhooks or []), serialize(existing.webhooks or [])
        ) and is_subset(
            serialize(desired.metadata.owner_references or []),
            serialize(existing.metadata.owner_references or []),
        )

    async def reconcile(self, desired: client.V1MutatingWebhookConfiguration) -> str:
        """
        Make the cluster hold the desired configuration.

        Returns:
            "created", "updated" or "unchanged"

        Raises:
            KubernetesAPIError: If the configuration cannot be converged
        """
        name = desired.metadata.name
        try:
            result = await self._reconcile_with_retries(desired)
        except KubernetesAPIError as e:
            metrics_collector.record_registration("error")
            webhook_logger.log_registration(name, "error", error=e)
            raise
        metrics_collector.record_registration(result)
        webhook_logger.log_registration(name, result)
        return result

    async def _reconcile_with_retries(
        self, desired: client.V1MutatingWebhookConfiguration
    ) -> str:
        attempt = 1
        while True:
            try:
                return await self._reconcile_once(desired)
            except RegistrationConflictError:
                if attempt >= self.conflict_retries:
                    raise
                logger.warning(
                    f"Conflict updating webhook configuration {desired.metadata.name}, "
                    f"retrying ({attempt}/{self.conflict_retries})"
                )
                attempt += 1

    async def _reconcile_once(
        self, desired: client.V1MutatingWebhookConfiguration
    ) -> str:
        name = desired.metadata.name
        try:
            await asyncio.to_thread(
                self.api.create_mutating_webhook_configuration, body=desired
            )
            return "created"
        except ApiException as e:
            if e.status != 409:
                raise KubernetesAPIError(
                    f"Failed to create the webhook {name}",
                    reason=e.reason,
                    status=e.status,
                    cause=e,
                ) from e

        logger.info(f"Webhook configuration {name} already exists")
        try:
            existing = await asyncio.to_thread(
                self.api.read_mutating_webhook_configuration, name=name
            )
        except ApiException as e:
            raise KubernetesAPIError(
                f"Error retrieving webhook {name}",
                reason=e.reason,
                status=e.status,
                cause=e,
            ) from e

        if self.configuration_matches(desired, existing):
            logger.info("Webhook is already valid")
            return "unchanged"

        logger.info("Updating webhook")
        # The read resourceVersion turns a concurrent write into a 409
        existing.webhooks = desired.webhooks
        existing.metadata.owner_references = desired.metadata.owner_references
        try:
            await asyncio.to_thread(
                self.api.replace_mutating_webhook_configuration,
                name=name,
                body=existing,
            )
        except ApiException as e:
            if e.status == 409:
                raise RegistrationConflictError(name, cause=e) from e
            raise KubernetesAPIError(
                f"Failed to update webhook {name}",
                reason=e.reason,
                status=e.status,
                cause=e,
            ) from e
        return "updated"

    async def deregister(self, name: str) -> bool:
        """
        Delete the webhook configuration.

        Returns:
            True if deleted, False if it did not exist

        Raises:
            KubernetesAPIError: If deletion fails for reasons other than 404
        """
        try:
            await asyncio.to_thread(
                self.api.delete_mutating_webhook_configuration, name=name
            )
        except ApiException as e:
            if e.status == 404:
                logger.debug(f"Webhook configuration {name} already gone")
                return False
            raise KubernetesAPIError(
                f"Failed to delete webhook {name}",
                reason=e.reason,
                status=e.status,
                cause=e,
            ) from e
        webhook_logger.log_registration(name, "deleted")
        return True
