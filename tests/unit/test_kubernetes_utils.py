"""Unit tests for Kubernetes utility functions."""

from unittest.mock import MagicMock, patch

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from build_webhook.errors import KubernetesAPIError, MissingCredentialError
from build_webhook.utils.kubernetes import (
    get_apiserver_client_ca,
    get_deployment_owner_reference,
    get_kubernetes_client,
)


class TestGetKubernetesClient:
    """Tests for get_kubernetes_client."""

    @patch("build_webhook.utils.kubernetes.config")
    def test_prefers_in_cluster_config(self, mock_config):
        get_kubernetes_client()
        mock_config.load_incluster_config.assert_called_once()
        mock_config.load_kube_config.assert_not_called()

    @patch("build_webhook.utils.kubernetes.config")
    def test_falls_back_to_kubeconfig(self, mock_config):
        mock_config.ConfigException = Exception
        mock_config.load_incluster_config.side_effect = Exception("not in cluster")
        get_kubernetes_client()
        mock_config.load_kube_config.assert_called_once()


class TestGetApiserverClientCA:
    """Tests for get_apiserver_client_ca."""

    def test_reads_request_header_ca(self):
        mock_api = MagicMock()
        mock_api.read_namespaced_config_map.return_value = client.V1ConfigMap(
            data={"requestheader-client-ca-file": "-----BEGIN CERTIFICATE-----"}
        )
        with patch("kubernetes.client.CoreV1Api", return_value=mock_api):
            ca = get_apiserver_client_ca(MagicMock())
        assert ca == b"-----BEGIN CERTIFICATE-----"
        mock_api.read_namespaced_config_map.assert_called_once_with(
            name="extension-apiserver-authentication", namespace="kube-system"
        )

    def test_missing_key_is_a_credential_error(self):
        mock_api = MagicMock()
        mock_api.read_namespaced_config_map.return_value = client.V1ConfigMap(
            data={"client-ca-file": "x"}
        )
        with patch("kubernetes.client.CoreV1Api", return_value=mock_api):
            with pytest.raises(MissingCredentialError, match="requestheader-client-ca-file"):
                get_apiserver_client_ca(MagicMock())

    def test_api_error(self):
        mock_api = MagicMock()
        mock_api.read_namespaced_config_map.side_effect = ApiException(
            status=403, reason="Forbidden"
        )
        with patch("kubernetes.client.CoreV1Api", return_value=mock_api):
            with pytest.raises(KubernetesAPIError) as exc_info:
                get_apiserver_client_ca(MagicMock())
        assert exc_info.value.status == 403


class TestGetDeploymentOwnerReference:
    """Tests for get_deployment_owner_reference."""

    def test_builds_controller_reference(self):
        mock_api = MagicMock()
        deployment = MagicMock()
        deployment.metadata = client.V1ObjectMeta(name="build-webhook", uid="abc-123")
        mock_api.read_namespaced_deployment.return_value = deployment
        with patch("kubernetes.client.AppsV1Api", return_value=mock_api):
            reference = get_deployment_owner_reference(
                MagicMock(), "build-webhook", "knative-build"
            )
        assert reference.api_version == "apps/v1"
        assert reference.kind == "Deployment"
        assert reference.uid == "abc-123"
        assert reference.controller is True
        assert reference.block_owner_deletion is True

    def test_missing_deployment(self):
        mock_api = MagicMock()
        mock_api.read_namespaced_deployment.side_effect = ApiException(
            status=404, reason="Not Found"
        )
        with patch("kubernetes.client.AppsV1Api", return_value=mock_api):
            with pytest.raises(KubernetesAPIError, match="build-webhook"):
                get_deployment_owner_reference(
                    MagicMock(), "build-webhook", "knative-build"
                )
