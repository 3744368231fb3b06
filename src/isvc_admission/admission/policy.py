"""Process-wide allow-lists consulted by admission rules."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from isvc_admission.admission.constants import (
    DEFAULT_AUTOSCALER_CLASSES,
    DEFAULT_GPU_RESOURCE_TYPES,
    DEFAULT_HPA_METRICS,
    DEFAULT_KEDA_METRIC_BACKENDS,
    DEFAULT_KEDA_METRICS,
    DEFAULT_KPA_METRICS,
)


class ValidationPolicy(BaseModel):
    """Allow-lists for autoscaler classes, metrics and GPU resource types.

    Built once at startup and shared read-only by every admission call.
    Use ``with_custom_gpu_types`` to derive an extended policy.
    """

    model_config = ConfigDict(frozen=True)

    allowed_autoscaler_classes: tuple[str, ...] = Field(
        default=DEFAULT_AUTOSCALER_CLASSES,
        description="Values accepted for the autoscaler class annotation",
    )
    hpa_metrics: tuple[str, ...] = Field(
        default=DEFAULT_HPA_METRICS, description="Metrics the HPA autoscaler supports"
    )
    keda_metrics: tuple[str, ...] = Field(
        default=DEFAULT_KEDA_METRICS, description="Resource metrics KEDA supports"
    )
    keda_metric_backends: tuple[str, ...] = Field(
        default=DEFAULT_KEDA_METRIC_BACKENDS,
        description="External metric backends KEDA can query",
    )
    kpa_metrics: tuple[str, ...] = Field(
        default=DEFAULT_KPA_METRICS, description="Metrics the Knative autoscaler supports"
    )
    gpu_resource_types: tuple[str, ...] = Field(
        default=DEFAULT_GPU_RESOURCE_TYPES,
        description="Extended resource names recognized as GPUs",
    )

    def with_custom_gpu_types(self, gpu_types: Iterable[str]) -> ValidationPolicy:
        """Return a copy with extra GPU resource types appended."""
        merged = list(self.gpu_resource_types)
        for gpu_type in gpu_types:
            gpu_type = gpu_type.strip()
            if gpu_type and gpu_type not in merged:
                merged.append(gpu_type)
        return self.model_copy(update={"gpu_resource_types": tuple(merged)})

    def summary(self) -> dict[str, list[str]]:
        """Return the allow-lists as plain lists."""
        return {name: list(values) for name, values in self.model_dump().items()}


DEFAULT_POLICY = ValidationPolicy()
