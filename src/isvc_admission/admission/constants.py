"""Annotation keys, environment names and allow-lists used by admission rules."""

from enum import Enum

# Annotation keys
AUTOSCALER_CLASS_ANNOTATION = "serving.kserve.io/autoscalerClass"
AUTOSCALER_METRICS_ANNOTATION = "serving.kserve.io/metrics"
TARGET_UTILIZATION_ANNOTATION = "serving.kserve.io/targetUtilizationPercentage"
DEPLOYMENT_MODE_ANNOTATION = "serving.kserve.io/deploymentMode"
GPU_RESOURCE_TYPES_ANNOTATION = "serving.kserve.io/gpu-resource-types"
KNATIVE_CLASS_ANNOTATION = "autoscaling.knative.dev/class"

KNATIVE_HPA_CLASS = "hpa.autoscaling.knative.dev"
KNATIVE_KPA_CLASS = "kpa.autoscaling.knative.dev"

# Container environment
PIPELINE_PARALLEL_SIZE_ENV = "PIPELINE_PARALLEL_SIZE"
TENSOR_PARALLEL_SIZE_ENV = "TENSOR_PARALLEL_SIZE"
STORAGE_URI_ENV = "STORAGE_URI"

# Name of the transformer container when collocated inside the predictor pod
TRANSFORMER_CONTAINER_NAME = "transformer-container"


class AutoscalerClass(str, Enum):
    """Values of the serving.kserve.io/autoscalerClass annotation."""

    HPA = "hpa"
    KEDA = "keda"
    KPA = "kpa"
    EXTERNAL = "external"


class DeploymentMode(str, Enum):
    """Values of the serving.kserve.io/deploymentMode annotation."""

    SERVERLESS = "Serverless"
    RAW_DEPLOYMENT = "RawDeployment"
    MODEL_MESH = "ModelMesh"


class ScaleMetric(str, Enum):
    """Metric a component scales on."""

    CPU = "cpu"
    MEMORY = "memory"
    CONCURRENCY = "concurrency"
    RPS = "rps"


class MetricSourceType(str, Enum):
    """Tag of an autoScaling.metrics entry."""

    RESOURCE = "Resource"
    EXTERNAL = "External"


class MetricsBackend(str, Enum):
    """Metric backends a KEDA External trigger can query."""

    PROMETHEUS = "prometheus"
    GRAPHITE = "graphite"


DEFAULT_AUTOSCALER_CLASSES = (
    AutoscalerClass.HPA.value,
    AutoscalerClass.KEDA.value,
    AutoscalerClass.KPA.value,
    AutoscalerClass.EXTERNAL.value,
)
DEFAULT_HPA_METRICS = (ScaleMetric.CPU.value, ScaleMetric.MEMORY.value)
DEFAULT_KEDA_METRICS = (ScaleMetric.CPU.value, ScaleMetric.MEMORY.value)
DEFAULT_KEDA_METRIC_BACKENDS = (MetricsBackend.PROMETHEUS.value, MetricsBackend.GRAPHITE.value)
DEFAULT_KPA_METRICS = (ScaleMetric.CONCURRENCY.value, ScaleMetric.RPS.value)

DEFAULT_GPU_RESOURCE_TYPES = (
    "nvidia.com/gpu",
    "amd.com/gpu",
    "intel.com/gpu",
    "gpu.intel.com/i915",
    "gpu.intel.com/xe",
    "habana.ai/gaudi",
    "nvidia.com/mig-1g.5gb",
    "nvidia.com/mig-1g.10gb",
    "nvidia.com/mig-2g.10gb",
    "nvidia.com/mig-2g.20gb",
    "nvidia.com/mig-3g.20gb",
    "nvidia.com/mig-3g.40gb",
    "nvidia.com/mig-4g.20gb",
    "nvidia.com/mig-4g.40gb",
    "nvidia.com/mig-7g.40gb",
    "nvidia.com/mig-7g.80gb",
)

# Resource names that are never treated as accelerators
BASIC_RESOURCE_TYPES = frozenset({"cpu", "memory", "storage", "ephemeral-storage"})

SUPPORTED_STORAGE_URI_PREFIXES = (
    "gs://",
    "s3://",
    "pvc://",
    "file://",
    "https://",
    "http://",
    "hdfs://",
    "webhdfs://",
    "oci://",
    "hf://",
)

LOGGER_MODES = ("all", "request", "response")
