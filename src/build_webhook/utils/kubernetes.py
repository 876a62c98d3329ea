"""
Kubernetes utilities for the build webhook.

This module provides helper functions for interacting with the Kubernetes API:
- Kubernetes client management and configuration
- Reading the aggregated API server client CA
- Resolving the owner reference of the webhook deployment
"""

import logging

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from ..constants import (
    APISERVER_CA_CONFIGMAP,
    APISERVER_CA_CONFIGMAP_KEY,
    APISERVER_CA_CONFIGMAP_NAMESPACE,
)
from ..errors import KubernetesAPIError, MissingCredentialError

logger = logging.getLogger(__name__)


def get_kubernetes_client() -> client.ApiClient:
    """
    Get configured Kubernetes API client.

    Tries in-cluster configuration first (when running in a pod) and falls
    back to the local kubeconfig for development.

    Returns:
        Configured Kubernetes API client
    """
    try:
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    return client.ApiClient()


def get_apiserver_client_ca(k8s_client: client.ApiClient) -> bytes:
    """
    Get the aggregated API server client CA used to verify callers.

    This certificate is provided by Kubernetes; we control neither its name
    nor its location.

    Returns:
        PEM encoded CA bundle

    Raises:
        KubernetesAPIError: If the ConfigMap cannot be read
        MissingCredentialError: If the ConfigMap has no client CA
    """
    core_api = client.CoreV1Api(k8s_client)
    try:
        configmap = core_api.read_namespaced_config_map(
            name=APISERVER_CA_CONFIGMAP, namespace=APISERVER_CA_CONFIGMAP_NAMESPACE
        )
    except ApiException as e:
        raise KubernetesAPIError(
            f"Failed to read ConfigMap {APISERVER_CA_CONFIGMAP_NAMESPACE}/{APISERVER_CA_CONFIGMAP}",
            reason=e.reason,
            status=e.status,
            cause=e,
        ) from e

    pem = (configmap.data or {}).get(APISERVER_CA_CONFIGMAP_KEY)
    if not pem:
        raise MissingCredentialError(
            f"cannot find {APISERVER_CA_CONFIGMAP_KEY} in ConfigMap "
            f"{APISERVER_CA_CONFIGMAP_NAMESPACE}/{APISERVER_CA_CONFIGMAP}",
            user_action="Enable the aggregation layer request header client CA on the API server",
        )
    return pem.encode("utf-8")


def get_deployment_owner_reference(
    k8s_client: client.ApiClient, name: str, namespace: str
) -> client.V1OwnerReference:
    """
    Build a controller owner reference to a deployment.

    Objects owned this way are garbage collected by Kubernetes when the
    deployment is deleted.

    Raises:
        KubernetesAPIError: If the deployment cannot be read
    """
    apps_api = client.AppsV1Api(k8s_client)
    try:
        deployment = apps_api.read_namespaced_deployment(name=name, namespace=namespace)
    except ApiException as e:
        raise KubernetesAPIError(
            f"Failed to fetch our deployment {namespace}/{name}",
            reason=e.reason,
            status=e.status,
            cause=e,
        ) from e

    return client.V1OwnerReference(
        api_version="apps/v1",
        kind="Deployment",
        name=deployment.metadata.name,
        uid=deployment.metadata.uid,
        controller=True,
        block_owner_deletion=True,
    )
