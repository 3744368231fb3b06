"""Exceptions for cluster access and server setup."""


class AdmissionServerError(Exception):
    """Base exception for admission server errors."""

    pass


class AuthenticationError(AdmissionServerError):
    """Failed to authenticate against the Kubernetes API."""

    pass


class NotFoundError(AdmissionServerError):
    """A Kubernetes resource does not exist."""

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        location = f" in namespace '{namespace}'" if namespace else ""
        super().__init__(f"{kind} '{name}' not found{location}")


class ClusterConfigError(AdmissionServerError):
    """Cluster-wide serving configuration could not be interpreted.

    Raised when the inferenceservice-config ConfigMap holds malformed
    JSON or values of the wrong type.
    """

    pass
