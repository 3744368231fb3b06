"""Kubernetes client used to read cluster-wide serving configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from kubernetes import client, config
from kubernetes.client import ApiException

from isvc_admission.config import AdmissionSettings, AuthMode, get_config
from isvc_admission.utils.errors import AdmissionServerError, AuthenticationError, NotFoundError

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_TOKEN = Path("/var/run/secrets/kubernetes.io/serviceaccount/token")


class K8sClient:
    """Kubernetes client for reading ConfigMaps.

    Supports multiple authentication modes:
    - auto: Try in-cluster first, fall back to kubeconfig
    - kubeconfig: Use kubeconfig file with optional context
    - token: Use explicit API server URL and token
    """

    def __init__(self, config_obj: AdmissionSettings | None = None) -> None:
        self._config = config_obj or get_config()
        self._api_client: client.ApiClient | None = None
        self._core_v1: client.CoreV1Api | None = None

    def connect(self) -> None:
        """Establish connection to Kubernetes API."""
        try:
            self._api_client = self._create_api_client()
            self._core_v1 = client.CoreV1Api(self._api_client)
            logger.info("Connected to Kubernetes API")
        except AuthenticationError:
            raise
        except Exception as e:
            raise AuthenticationError(f"Failed to connect to Kubernetes API: {e}") from e

    def disconnect(self) -> None:
        """Close connection to Kubernetes API."""
        if self._api_client:
            self._api_client.close()
            self._api_client = None
            self._core_v1 = None
            logger.info("Disconnected from Kubernetes API")

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._api_client is not None

    def _create_api_client(self) -> client.ApiClient:
        """Create API client based on authentication mode."""
        auth_mode = self._config.auth_mode

        if auth_mode == AuthMode.TOKEN:
            return self._create_token_client()
        elif auth_mode == AuthMode.KUBECONFIG:
            return self._create_kubeconfig_client()
        else:  # AUTO
            return self._create_auto_client()

    def _create_token_client(self) -> client.ApiClient:
        """Create client using explicit token authentication."""
        if not self._config.api_server or not self._config.api_token:
            raise AuthenticationError(
                "api_server and api_token are required for token authentication"
            )

        configuration = client.Configuration()
        configuration.host = self._config.api_server
        configuration.api_key = {"authorization": f"Bearer {self._config.api_token}"}
        configuration.verify_ssl = True

        return client.ApiClient(configuration)

    def _create_kubeconfig_client(self) -> client.ApiClient:
        """Create client using kubeconfig file."""
        kubeconfig_path = self._config.effective_kubeconfig_path
        if not kubeconfig_path.exists():
            raise AuthenticationError(f"Kubeconfig not found: {kubeconfig_path}")

        return config.new_client_from_config(
            config_file=str(kubeconfig_path),
            context=self._config.kubeconfig_context,
        )

    def _create_auto_client(self) -> client.ApiClient:
        """Auto-detect authentication mode."""
        if SERVICE_ACCOUNT_TOKEN.exists():
            logger.info("Using in-cluster authentication")
            config.load_incluster_config()
            configuration = client.Configuration.get_default_copy()
            return client.ApiClient(configuration)

        kubeconfig_path = self._config.effective_kubeconfig_path
        if kubeconfig_path.exists():
            logger.info(f"Using kubeconfig: {kubeconfig_path}")
            return config.new_client_from_config(
                config_file=str(kubeconfig_path),
                context=self._config.kubeconfig_context,
            )

        raise AuthenticationError(
            "No valid authentication method found. "
            "Not running in-cluster and no kubeconfig available."
        )

    @property
    def core_v1(self) -> client.CoreV1Api:
        """Get the CoreV1 API client."""
        if not self._core_v1:
            raise AdmissionServerError("Client not connected. Call connect() first.")
        return self._core_v1

    def read_config_map(self, name: str, namespace: str) -> dict[str, str]:
        """Read the data section of a ConfigMap.

        Raises:
            NotFoundError: If the ConfigMap does not exist.
            AdmissionServerError: On any other API failure.
        """
        try:
            config_map = self.core_v1.read_namespaced_config_map(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError("ConfigMap", name, namespace) from e
            raise AdmissionServerError(f"Failed to read ConfigMap '{name}': {e.reason}") from e
        return dict(config_map.data or {})
