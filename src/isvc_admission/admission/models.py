"""Pydantic models for InferenceService admission.

These mirror the serving.kserve.io/v1beta1 wire shape closely enough to be
decoded straight from an AdmissionReview object. Models are frozen: the
validator only ever reads them.
"""

from __future__ import annotations

from typing import Any, ClassVar, Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from isvc_admission.admission.constants import (
    LOGGER_MODES,
    STORAGE_URI_ENV,
    SUPPORTED_STORAGE_URI_PREFIXES,
    TRANSFORMER_CONTAINER_NAME,
)
from isvc_admission.admission.errors import AdmissionError, ErrorCategory

SUPPORTED_PROTOCOL_VERSIONS = ("v1", "v2", "grpc-v1", "grpc-v2")


class WireModel(BaseModel):
    """Base for all resource models: camelCase aliases, read-only."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        protected_namespaces=(),
    )


# -----------------------------------------------------------------------------
# Core Kubernetes shapes
# -----------------------------------------------------------------------------


class ObjectMeta(WireModel):
    """Subset of Kubernetes object metadata used by admission."""

    name: str = ""
    namespace: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class EnvVar(WireModel):
    """Container environment variable."""

    name: str
    value: str | None = None
    value_from: dict[str, Any] | None = None


class ResourceRequirements(WireModel):
    """Container resource limits and requests as Kubernetes quantities."""

    limits: dict[str, Any] = Field(default_factory=dict)
    requests: dict[str, Any] = Field(default_factory=dict)


class Container(WireModel):
    """Subset of a Kubernetes container spec."""

    name: str = ""
    image: str | None = None
    command: list[str] = Field(default_factory=list)
    args: list[str] = Field(default_factory=list)
    env: list[EnvVar] = Field(default_factory=list)
    resources: ResourceRequirements = Field(default_factory=ResourceRequirements)


# -----------------------------------------------------------------------------
# Autoscaling
# -----------------------------------------------------------------------------


class MetricTarget(WireModel):
    """Target value for an autoscaling metric."""

    type: str | None = None
    value: Any = None
    average_value: Any = None
    average_utilization: int | None = None


class ResourceMetricSource(WireModel):
    """Resource (cpu or memory) autoscaling metric."""

    name: str | None = None
    target: MetricTarget = Field(default_factory=MetricTarget)


class ExternalMetrics(WireModel):
    """Query against an external metrics backend."""

    backend: str | None = None
    server_address: str | None = None
    query: str = ""
    namespace: str | None = None


class ExternalMetricSource(WireModel):
    """External autoscaling metric."""

    metric: ExternalMetrics = Field(default_factory=ExternalMetrics)
    target: MetricTarget = Field(default_factory=MetricTarget)


class MetricsSpec(WireModel):
    """One entry of autoScaling.metrics, tagged by ``type``."""

    type: str
    resource: ResourceMetricSource | None = None
    external: ExternalMetricSource | None = None


class AutoScalingSpec(WireModel):
    """Multi-metric autoscaling configuration."""

    metrics: list[MetricsSpec] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Component extensions
# -----------------------------------------------------------------------------


class LoggerSpec(WireModel):
    """Request/response logger settings."""

    url: str | None = None
    mode: str = "all"


class BatcherSpec(WireModel):
    """Request batcher settings."""

    max_batch_size: int | None = None
    max_latency: int | None = None
    timeout: int | None = None


class ComponentExtensionSpec(WireModel):
    """Settings shared by every component role."""

    min_replicas: int | None = None
    max_replicas: int = 0
    scale_target: int | None = None
    scale_metric: str | None = None
    container_concurrency: int | None = None
    timeout: int | None = None
    canary_traffic_percent: int | None = None
    logger: LoggerSpec | None = None
    batcher: BatcherSpec | None = None
    auto_scaling: AutoScalingSpec | None = None
    deployment_strategy: dict[str, Any] | None = None

    def validate_extensions(self) -> AdmissionError | None:
        """Check replica, concurrency, canary and logger settings."""
        if self.container_concurrency is not None and self.container_concurrency < 0:
            return AdmissionError("parallelism cannot be less than 0.", ErrorCategory.OUT_OF_RANGE)

        min_replicas = self.min_replicas if self.min_replicas is not None else 1
        if min_replicas < 0:
            return AdmissionError("MinReplicas cannot be less than 0.", ErrorCategory.OUT_OF_RANGE)
        if self.max_replicas < 0:
            return AdmissionError("MaxReplicas cannot be less than 0.", ErrorCategory.OUT_OF_RANGE)
        if min_replicas > self.max_replicas and self.max_replicas != 0:
            return AdmissionError(
                "'MinReplicas' cannot be greater than MaxReplicas.", ErrorCategory.OUT_OF_RANGE
            )

        if self.canary_traffic_percent is not None and not 0 <= self.canary_traffic_percent <= 100:
            return AdmissionError(
                "canaryTrafficPercent must be a [0-100] integer", ErrorCategory.OUT_OF_RANGE
            )

        if self.logger is not None and self.logger.mode not in LOGGER_MODES:
            return AdmissionError("invalid logger type", ErrorCategory.INVALID_SPEC)
        return None


# -----------------------------------------------------------------------------
# Implementations
# -----------------------------------------------------------------------------


class Implementation(Protocol):
    """A concrete serving backend for a component."""

    @property
    def resources(self) -> ResourceRequirements: ...

    def validate_implementation(self) -> AdmissionError | None: ...

    def get_storage_uri(self) -> str | None: ...


def validate_storage_uri(storage_uri: str | None) -> AdmissionError | None:
    """Check a storage URI is a supported remote location or a local path."""
    if not storage_uri:
        return None
    if "://" not in storage_uri:
        return None
    if storage_uri.startswith(SUPPORTED_STORAGE_URI_PREFIXES):
        return None
    return AdmissionError(
        "storageUri, must be one of: [{}] or match https://{{}}.blob.core.windows.net/{{}}/{{}} "
        "or be an absolute or relative local path. StorageUri [{}] is not supported.".format(
            ", ".join(SUPPORTED_STORAGE_URI_PREFIXES), storage_uri
        ),
        ErrorCategory.INVALID_SPEC,
    )


class PredictorExtensionSpec(Container):
    """Built-in model server: a container plus model location and protocol."""

    storage_uri: str | None = None
    runtime_version: str | None = None
    protocol_version: str | None = None

    def get_storage_uri(self) -> str | None:
        return self.storage_uri

    def validate_implementation(self) -> AdmissionError | None:
        if self.protocol_version is not None and self.protocol_version not in SUPPORTED_PROTOCOL_VERSIONS:
            return AdmissionError(
                f"protocolVersion [{self.protocol_version}] is not supported, must be one of "
                f"[{', '.join(SUPPORTED_PROTOCOL_VERSIONS)}]",
                ErrorCategory.INVALID_SPEC,
            )
        return validate_storage_uri(self.storage_uri)


class ModelFormat(WireModel):
    """Model format served by a runtime."""

    name: str = ""
    version: str | None = None


class ModelSpec(PredictorExtensionSpec):
    """Format-driven predictor resolved to a ServingRuntime."""

    model_format: ModelFormat | None = None
    runtime: str | None = None

    def validate_implementation(self) -> AdmissionError | None:
        if self.model_format is None or not self.model_format.name:
            return AdmissionError("modelFormat.name must be specified for model", ErrorCategory.INVALID_SPEC)
        return super().validate_implementation()


class ARTExplainerSpec(Container):
    """Adversarial Robustness Toolbox explainer."""

    type: str = "SquareAttack"
    storage_uri: str | None = None
    runtime_version: str | None = None
    config: dict[str, str] = Field(default_factory=dict)

    def get_storage_uri(self) -> str | None:
        return self.storage_uri

    def validate_implementation(self) -> AdmissionError | None:
        return validate_storage_uri(self.storage_uri)


class CustomContainer:
    """User-provided serving containers, reading the model location from STORAGE_URI."""

    def __init__(self, containers: list[Container]) -> None:
        self.containers = containers

    @property
    def resources(self) -> ResourceRequirements:
        return self.containers[0].resources

    def get_storage_uri(self) -> str | None:
        for env in self.containers[0].env:
            if env.name == STORAGE_URI_ENV:
                return env.value
        return None

    def validate_implementation(self) -> AdmissionError | None:
        return validate_storage_uri(self.get_storage_uri())


# -----------------------------------------------------------------------------
# Components
# -----------------------------------------------------------------------------


class Component(ComponentExtensionSpec):
    """A serving role carrying extension settings and implementation variants.

    Built-in variants are optional fields listed in ``IMPLEMENTATION_FIELDS``.
    Containers not reserved for a collocated transformer form one more,
    custom variant.
    """

    IMPLEMENTATION_FIELDS: ClassVar[tuple[tuple[str, str], ...]] = ()

    containers: list[Container] = Field(default_factory=list)

    def _serving_containers(self) -> list[Container]:
        return self.containers

    def get_implementations(self) -> list[Implementation]:
        """Return every populated implementation variant."""
        implementations: list[Implementation] = [
            getattr(self, field) for field, _ in self.IMPLEMENTATION_FIELDS if getattr(self, field) is not None
        ]
        serving = self._serving_containers()
        if serving:
            implementations.append(CustomContainer(serving))
        return implementations

    def get_implementation(self) -> Implementation | None:
        """Return the single populated variant, or None if there is not exactly one."""
        implementations = self.get_implementations()
        if len(implementations) != 1:
            return None
        return implementations[0]

    def get_extensions(self) -> ComponentExtensionSpec:
        return self

    @classmethod
    def implementation_names(cls) -> list[str]:
        return [name for _, name in cls.IMPLEMENTATION_FIELDS] + ["Containers"]


class WorkerSpec(WireModel):
    """Worker pods for multi-node serving."""

    containers: list[Container] = Field(default_factory=list)
    pipeline_parallel_size: int | None = None
    tensor_parallel_size: int | None = None


class PredictorSpec(Component):
    """Predictor role: the model server itself."""

    IMPLEMENTATION_FIELDS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("sklearn", "SKLearn"),
        ("xgboost", "XGBoost"),
        ("tensorflow", "Tensorflow"),
        ("pytorch", "PyTorch"),
        ("triton", "Triton"),
        ("onnx", "ONNX"),
        ("huggingface", "HuggingFace"),
        ("pmml", "PMML"),
        ("lightgbm", "LightGBM"),
        ("paddle", "Paddle"),
        ("model", "Model"),
    )

    sklearn: PredictorExtensionSpec | None = None
    xgboost: PredictorExtensionSpec | None = None
    tensorflow: PredictorExtensionSpec | None = None
    pytorch: PredictorExtensionSpec | None = None
    triton: PredictorExtensionSpec | None = None
    onnx: PredictorExtensionSpec | None = None
    huggingface: PredictorExtensionSpec | None = None
    pmml: PredictorExtensionSpec | None = None
    lightgbm: PredictorExtensionSpec | None = None
    paddle: PredictorExtensionSpec | None = None
    model: ModelSpec | None = None
    worker_spec: WorkerSpec | None = None

    def _serving_containers(self) -> list[Container]:
        # A transformer-container entry is the collocated transformer, not a predictor variant.
        return [c for c in self.containers if c.name != TRANSFORMER_CONTAINER_NAME]


class TransformerSpec(Component):
    """Transformer role: pre/post-processing in front of the predictor."""


class ExplainerSpec(Component):
    """Explainer role: model explanations."""

    IMPLEMENTATION_FIELDS: ClassVar[tuple[tuple[str, str], ...]] = (("art", "ART"),)

    art: ARTExplainerSpec | None = None


class InferenceServiceSpec(WireModel):
    """Component roles of an InferenceService."""

    predictor: PredictorSpec
    transformer: TransformerSpec | None = None
    explainer: ExplainerSpec | None = None


class InferenceService(WireModel):
    """An InferenceService resource."""

    api_version: str = "serving.kserve.io/v1beta1"
    kind: str = "InferenceService"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: InferenceServiceSpec

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def annotations(self) -> dict[str, str]:
        return self.metadata.annotations

    def components(self) -> list[tuple[str, Component]]:
        """Return (role, component) pairs for every populated role, predictor first."""
        roles: list[tuple[str, Component | None]] = [
            ("predictor", self.spec.predictor),
            ("transformer", self.spec.transformer),
            ("explainer", self.spec.explainer),
        ]
        return [(role, component) for role, component in roles if component is not None]
