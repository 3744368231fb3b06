"""Configuration management for the InferenceService admission server."""

import os
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AuthMode(str, Enum):
    """Authentication mode for Kubernetes API."""

    AUTO = "auto"
    KUBECONFIG = "kubeconfig"
    TOKEN = "token"


class TransportMode(str, Enum):
    """MCP transport mode."""

    STDIO = "stdio"
    SSE = "sse"
    STREAMABLE_HTTP = "streamable-http"


class LogLevel(str, Enum):
    """Logging level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class AdmissionSettings(BaseSettings):
    """Configuration for the admission server.

    Configuration is loaded from environment variables with ISVC_ADMISSION_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="ISVC_ADMISSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Authentication settings
    auth_mode: AuthMode = Field(
        default=AuthMode.AUTO,
        description="Authentication mode: auto, kubeconfig, or token",
    )
    kubeconfig_path: Path | None = Field(
        default=None,
        description="Path to kubeconfig file (defaults to ~/.kube/config)",
    )
    kubeconfig_context: str | None = Field(
        default=None,
        description="Kubeconfig context to use",
    )
    api_server: str | None = Field(
        default=None,
        description="Kubernetes API server URL (for token auth)",
    )
    api_token: str | None = Field(
        default=None,
        description="Kubernetes API token (for token auth)",
    )

    # Cluster configuration
    load_cluster_config: bool = Field(
        default=True,
        description="Read the inferenceservice-config ConfigMap at startup",
    )
    controller_namespace: str = Field(
        default="kserve",
        description="Namespace holding the inferenceservice-config ConfigMap",
    )
    config_map_name: str = Field(
        default="inferenceservice-config",
        description="Name of the ConfigMap with cluster-wide serving configuration",
    )
    custom_gpu_resource_types: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Extra resource names accepted as GPUs, in addition to the cluster list",
    )

    # Transport settings
    transport: TransportMode = Field(
        default=TransportMode.STREAMABLE_HTTP,
        description="MCP transport mode: stdio, sse, or streamable-http",
    )
    host: str = Field(
        default="127.0.0.1",
        description="Host to bind HTTP server to",
    )
    port: int = Field(
        default=9443,
        ge=1,
        le=65535,
        description="Port to bind HTTP server to",
    )
    webhook_path: str = Field(
        default="/validate-inferenceservices",
        description="HTTP path serving AdmissionReview requests",
    )

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )

    @field_validator("kubeconfig_path", mode="before")
    @classmethod
    def resolve_kubeconfig_path(cls, v: str | Path | None) -> Path | None:
        """Resolve kubeconfig path, defaulting to standard location."""
        if v is None:
            return None
        return Path(v).expanduser().resolve()

    @field_validator("custom_gpu_resource_types", mode="before")
    @classmethod
    def split_gpu_types(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("webhook_path")
    @classmethod
    def check_webhook_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("webhook_path must start with '/'")
        return v

    @property
    def effective_kubeconfig_path(self) -> Path:
        """Get the effective kubeconfig path, with default."""
        if self.kubeconfig_path:
            return self.kubeconfig_path
        env_path = os.environ.get("KUBECONFIG")
        if env_path:
            return Path(env_path).expanduser().resolve()
        return Path.home() / ".kube" / "config"

    def validate_auth_config(self) -> list[str]:
        """Validate authentication configuration and return any warnings."""
        warnings = []

        if not self.load_cluster_config:
            return warnings

        if self.auth_mode == AuthMode.TOKEN:
            if not self.api_server:
                raise ValueError("api_server is required when auth_mode is 'token'")
            if not self.api_token:
                raise ValueError("api_token is required when auth_mode is 'token'")

        if self.auth_mode == AuthMode.KUBECONFIG and not self.effective_kubeconfig_path.exists():
            raise ValueError(f"Kubeconfig file not found: {self.effective_kubeconfig_path}")

        if self.auth_mode == AuthMode.AUTO:
            if Path("/var/run/secrets/kubernetes.io/serviceaccount/token").exists():
                warnings.append("Running in-cluster, will use service account")
            elif not self.effective_kubeconfig_path.exists():
                warnings.append(
                    f"No kubeconfig found at {self.effective_kubeconfig_path}, "
                    "will attempt in-cluster auth"
                )

        return warnings


# Global configuration instance
_config: AdmissionSettings | None = None


def get_config() -> AdmissionSettings:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AdmissionSettings()
    return _config


def configure(**kwargs: Any) -> AdmissionSettings:
    """Configure the global settings.

    This should be called before get_config() if you want to override defaults.
    """
    global _config
    _config = AdmissionSettings(**kwargs)
    return _config
