"""Tests for the Kubernetes client."""

from unittest.mock import MagicMock

import pytest
from kubernetes.client import ApiException

from isvc_admission.clients.k8s import K8sClient
from isvc_admission.config import AdmissionSettings, AuthMode
from isvc_admission.utils.errors import AdmissionServerError, AuthenticationError, NotFoundError


@pytest.fixture
def client() -> K8sClient:
    """K8sClient with a mocked CoreV1 API."""
    k8s = K8sClient(AdmissionSettings())
    k8s._core_v1 = MagicMock()
    return k8s


class TestReadConfigMap:
    """Test ConfigMap reads."""

    def test_returns_data(self, client: K8sClient) -> None:
        config_map = MagicMock()
        config_map.data = {"multiNode": "{}"}
        client.core_v1.read_namespaced_config_map.return_value = config_map

        data = client.read_config_map("inferenceservice-config", "kserve")

        assert data == {"multiNode": "{}"}
        client.core_v1.read_namespaced_config_map.assert_called_once_with(
            name="inferenceservice-config", namespace="kserve"
        )

    def test_empty_data(self, client: K8sClient) -> None:
        config_map = MagicMock()
        config_map.data = None
        client.core_v1.read_namespaced_config_map.return_value = config_map

        assert client.read_config_map("inferenceservice-config", "kserve") == {}

    def test_not_found(self, client: K8sClient) -> None:
        client.core_v1.read_namespaced_config_map.side_effect = ApiException(status=404, reason="Not Found")

        with pytest.raises(NotFoundError) as exc_info:
            client.read_config_map("inferenceservice-config", "kserve")

        assert str(exc_info.value) == "ConfigMap 'inferenceservice-config' not found in namespace 'kserve'"

    def test_forbidden(self, client: K8sClient) -> None:
        client.core_v1.read_namespaced_config_map.side_effect = ApiException(status=403, reason="Forbidden")

        with pytest.raises(AdmissionServerError, match="Forbidden"):
            client.read_config_map("inferenceservice-config", "kserve")


class TestConnection:
    """Test connection handling."""

    def test_not_connected(self) -> None:
        k8s = K8sClient(AdmissionSettings())

        assert k8s.is_connected is False
        with pytest.raises(AdmissionServerError, match="Client not connected"):
            _ = k8s.core_v1

    def test_token_auth_requires_credentials(self) -> None:
        k8s = K8sClient(AdmissionSettings(auth_mode=AuthMode.TOKEN))

        with pytest.raises(AuthenticationError, match="api_server and api_token are required"):
            k8s.connect()

    def test_kubeconfig_missing(self, tmp_path) -> None:
        k8s = K8sClient(AdmissionSettings(auth_mode=AuthMode.KUBECONFIG, kubeconfig_path=tmp_path / "missing"))

        with pytest.raises(AuthenticationError, match="Kubeconfig not found"):
            k8s.connect()

    def test_disconnect(self) -> None:
        k8s = K8sClient(AdmissionSettings())
        api_client = MagicMock()
        k8s._api_client = api_client
        k8s._core_v1 = MagicMock()

        k8s.disconnect()

        api_client.close.assert_called_once()
        assert k8s.is_connected is False
