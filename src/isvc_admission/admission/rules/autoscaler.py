"""Autoscaler class resolution and per-backend scaling bounds.

Two passes are involved. ``resolve_autoscaler_class`` checks the class
annotation against the policy and the metric vocabulary of that class.
``validate_scaling_extension`` later checks each component's scale
target bounds with the evaluator picked by ``select_scaling_evaluator``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from decimal import Decimal

from kubernetes.utils import parse_quantity

from isvc_admission.admission.constants import (
    AUTOSCALER_CLASS_ANNOTATION,
    AUTOSCALER_METRICS_ANNOTATION,
    DEPLOYMENT_MODE_ANNOTATION,
    KNATIVE_CLASS_ANNOTATION,
    KNATIVE_HPA_CLASS,
    TARGET_UTILIZATION_ANNOTATION,
    AutoscalerClass,
    DeploymentMode,
    MetricSourceType,
    ScaleMetric,
)
from isvc_admission.admission.errors import AdmissionError, ErrorCategory
from isvc_admission.admission.models import (
    ComponentExtensionSpec,
    InferenceService,
    MetricsSpec,
)
from isvc_admission.admission.policy import ValidationPolicy

logger = logging.getLogger(__name__)

TARGET_UTILIZATION_ERROR = "the target utilization percentage should be a [1-100] integer"
TARGET_MEMORY_ERROR = "the target memory should be greater than 1 MiB"
SCALING_CONFLICT_ERROR = (
    "there is a conflict between ScaleMetric and AutoScaling. "
    "Please use AutoScaling if you want to use KEDA"
)
DEPLOYMENT_STRATEGY_ERROR = "customizing deploymentStrategy is only supported for raw deployment mode"

ONE_MEBIBYTE = Decimal(1024 * 1024)

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def _out_of_range(message: str) -> AdmissionError:
    return AdmissionError(message, ErrorCategory.OUT_OF_RANGE)


def _unsupported(message: str) -> AdmissionError:
    return AdmissionError(message, ErrorCategory.AUTOSCALER_CONFIG)


# -----------------------------------------------------------------------------
# Metric vocabulary
# -----------------------------------------------------------------------------


def validate_hpa_metric(metric: str, policy: ValidationPolicy) -> AdmissionError | None:
    if metric in policy.hpa_metrics:
        return None
    return _unsupported(f"[{metric}] is not a supported metric")


def validate_keda_metric(metric: str | None, policy: ValidationPolicy) -> AdmissionError | None:
    if metric in policy.keda_metrics:
        return None
    return _unsupported(f"[{metric}] is not a supported metric in KEDA")


def validate_keda_metric_backend(backend: str | None, policy: ValidationPolicy) -> AdmissionError | None:
    if backend in policy.keda_metric_backends:
        return None
    return _unsupported(f"[{backend}] is not a supported metric backend in KEDA")


def validate_kpa_metric(metric: str, policy: ValidationPolicy) -> AdmissionError | None:
    if metric in policy.kpa_metrics:
        return None
    return _unsupported(f"[{metric}] is not a supported metric")


# -----------------------------------------------------------------------------
# Class resolution
# -----------------------------------------------------------------------------


def _resolve_keda_metrics(
    autoscaler_class: str, extensions: ComponentExtensionSpec, policy: ValidationPolicy
) -> AdmissionError | None:
    if extensions.scale_metric is not None and extensions.auto_scaling is not None:
        return _unsupported(SCALING_CONFLICT_ERROR)

    if extensions.scale_metric is not None:
        return validate_keda_metric(extensions.scale_metric, policy)

    if extensions.auto_scaling is None:
        return None

    for entry in extensions.auto_scaling.metrics:
        if entry.type == MetricSourceType.RESOURCE.value:
            name = entry.resource.name if entry.resource else None
            error = validate_keda_metric(name, policy)
        elif entry.type == MetricSourceType.EXTERNAL.value:
            backend = entry.external.metric.backend if entry.external else None
            error = validate_keda_metric_backend(backend, policy)
        else:
            error = _unsupported(
                f"unknown auto scaling type class [{autoscaler_class}] with value [{entry.type}]. "
                "Valid types are Resource and External"
            )
        if error:
            return error
    return None


def resolve_autoscaler_class(isvc: InferenceService, policy: ValidationPolicy) -> AdmissionError | None:
    """Check the autoscaler class annotation and the metrics it implies.

    An absent annotation is accepted; defaulting picks the class later.
    """
    annotations = isvc.annotations
    if AUTOSCALER_CLASS_ANNOTATION not in annotations:
        return None

    value = annotations[AUTOSCALER_CLASS_ANNOTATION]
    if value not in policy.allowed_autoscaler_classes:
        return _unsupported(f"[{value}] is not a supported autoscaler class type")

    if value == AutoscalerClass.HPA.value:
        metric = annotations.get(AUTOSCALER_METRICS_ANNOTATION)
        if metric is None:
            return None
        return validate_hpa_metric(metric, policy)

    if value == AutoscalerClass.KEDA.value:
        return _resolve_keda_metrics(value, isvc.spec.predictor.get_extensions(), policy)

    if value in (AutoscalerClass.EXTERNAL.value, AutoscalerClass.KPA.value):
        return None

    return _unsupported(f"unknown autoscaler class [{value}]")


def validate_target_utilization(isvc: InferenceService) -> AdmissionError | None:
    """Check the target utilization annotation is an integer in [1, 100]."""
    value = isvc.annotations.get(TARGET_UTILIZATION_ANNOTATION)
    if value is None:
        return None
    if not _INTEGER_RE.fullmatch(value) or not 1 <= int(value) <= 100:
        return _out_of_range(TARGET_UTILIZATION_ERROR)
    return None


# -----------------------------------------------------------------------------
# Per-component bounds
# -----------------------------------------------------------------------------


def _validate_scale_target(metric: str, target: int | None) -> AdmissionError | None:
    if target is None:
        return None
    if metric == ScaleMetric.CPU.value and not 1 <= target <= 100:
        return _out_of_range(TARGET_UTILIZATION_ERROR)
    if metric == ScaleMetric.MEMORY.value and target < 1:
        return _out_of_range(TARGET_MEMORY_ERROR)
    return None


def _validate_keda_metric_target(entry: MetricsSpec) -> AdmissionError | None:
    if entry.type == MetricSourceType.RESOURCE.value and entry.resource is not None:
        target = entry.resource.target
        if entry.resource.name == ScaleMetric.CPU.value:
            utilization = target.average_utilization
            if utilization is None or not 1 <= utilization <= 100:
                return _out_of_range(TARGET_UTILIZATION_ERROR)
        elif entry.resource.name == ScaleMetric.MEMORY.value:
            if target.average_value is None:
                return _out_of_range(TARGET_MEMORY_ERROR)
            try:
                average_value = parse_quantity(target.average_value)
            except ValueError:
                return _out_of_range(f"invalid memory quantity [{target.average_value}]")
            if average_value < ONE_MEBIBYTE:
                return _out_of_range(TARGET_MEMORY_ERROR)

    elif entry.type == MetricSourceType.EXTERNAL.value:
        if entry.external is None or entry.external.metric.query == "":
            return AdmissionError("the query should not be empty", ErrorCategory.AUTOSCALER_CONFIG)
        if entry.external.target.value is None:
            return AdmissionError("the threshold value should not be empty", ErrorCategory.AUTOSCALER_CONFIG)
    return None


def validate_hpa_extension(extensions: ComponentExtensionSpec, policy: ValidationPolicy) -> AdmissionError | None:
    """Bounds for the Kubernetes HPA: cpu or memory, cpu by default."""
    metric = extensions.scale_metric or ScaleMetric.CPU.value
    error = validate_hpa_metric(metric, policy)
    if error:
        return error
    return _validate_scale_target(metric, extensions.scale_target)


def validate_keda_extension(extensions: ComponentExtensionSpec, policy: ValidationPolicy) -> AdmissionError | None:  # noqa: ARG001
    """Bounds for KEDA: bare scale target plus every autoScaling metric."""
    metric = extensions.scale_metric or ScaleMetric.CPU.value
    error = _validate_scale_target(metric, extensions.scale_target)
    if error:
        return error

    if extensions.auto_scaling is not None:
        for entry in extensions.auto_scaling.metrics:
            error = _validate_keda_metric_target(entry)
            if error:
                return error
    return None


def validate_kpa_extension(extensions: ComponentExtensionSpec, policy: ValidationPolicy) -> AdmissionError | None:
    """Bounds for the Knative Pod Autoscaler: concurrency or rps."""
    if extensions.deployment_strategy is not None:
        return AdmissionError(DEPLOYMENT_STRATEGY_ERROR, ErrorCategory.INVALID_SPEC)

    metric = extensions.scale_metric or ScaleMetric.CONCURRENCY.value
    error = validate_kpa_metric(metric, policy)
    if error:
        return error

    if metric == ScaleMetric.RPS.value and extensions.scale_target is not None and extensions.scale_target < 1:
        return _out_of_range("the target for rps should be greater than 1")
    return None


ScalingEvaluator = Callable[[ComponentExtensionSpec, ValidationPolicy], AdmissionError | None]

SCALING_EVALUATORS: dict[AutoscalerClass, ScalingEvaluator] = {
    AutoscalerClass.HPA: validate_hpa_extension,
    AutoscalerClass.KEDA: validate_keda_extension,
    AutoscalerClass.KPA: validate_kpa_extension,
}


def select_scaling_evaluator(annotations: Mapping[str, str]) -> AutoscalerClass:
    """Pick which backend's bounds apply to component extensions.

    KEDA wins whenever it is the requested class, in any deployment mode.
    Raw deployments and the Knative HPA class use HPA bounds; everything
    else is served by the Knative Pod Autoscaler.
    """
    autoscaler_class = annotations.get(AUTOSCALER_CLASS_ANNOTATION)
    if autoscaler_class == AutoscalerClass.KEDA.value:
        return AutoscalerClass.KEDA

    if (
        annotations.get(DEPLOYMENT_MODE_ANNOTATION) == DeploymentMode.RAW_DEPLOYMENT.value
        or annotations.get(KNATIVE_CLASS_ANNOTATION) == KNATIVE_HPA_CLASS
        or autoscaler_class == AutoscalerClass.HPA.value
    ):
        return AutoscalerClass.HPA

    return AutoscalerClass.KPA


def validate_scaling_extension(
    annotations: Mapping[str, str],
    extensions: ComponentExtensionSpec,
    policy: ValidationPolicy,
) -> AdmissionError | None:
    """Check a component's scaling settings with the selected backend's bounds."""
    backend = select_scaling_evaluator(annotations)
    logger.debug(f"Checking scaling bounds with {backend.value} evaluator")
    return SCALING_EVALUATORS[backend](extensions, policy)


