"""Entry point for InferenceService admission validation.

The validator runs the rule evaluators in a fixed order and stops at the
first failure. It holds no per-request state, so one instance can serve
any number of concurrent admission calls.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from enum import Enum

from pydantic import BaseModel, Field

from isvc_admission.admission.errors import AdmissionError, ErrorCategory
from isvc_admission.admission.models import InferenceService
from isvc_admission.admission.policy import DEFAULT_POLICY, ValidationPolicy
from isvc_admission.admission.resolvers import (
    EnvVarResolver,
    GpuTypeResolver,
    is_unknown_gpu_resource_type,
    lookup_env_var,
)
from isvc_admission.admission.rules import (
    resolve_autoscaler_class,
    validate_collocation_storage_uri,
    validate_component,
    validate_multi_node,
    validate_name,
    validate_target_utilization,
)

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Admission request operation."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


class AdmissionResult(BaseModel):
    """Outcome of validating one admission request."""

    allowed: bool = Field(..., description="True if the resource is admitted")
    warnings: list[str] = Field(default_factory=list, description="Warnings returned to the client")
    message: str | None = Field(None, description="Rejection reason")
    category: ErrorCategory | None = Field(None, description="Rejection cause")

    @classmethod
    def accept(cls, warnings: list[str] | None = None) -> AdmissionResult:
        return cls(allowed=True, warnings=warnings or [])

    @classmethod
    def reject(cls, error: AdmissionError, warnings: list[str] | None = None) -> AdmissionResult:
        return cls(
            allowed=False,
            warnings=warnings or [],
            message=error.message,
            category=error.category,
        )


class InferenceServiceValidator:
    """Validates InferenceService create and update requests.

    Args:
        policy: Allow-lists for autoscaler classes, metrics and GPU types.
        gpu_resolver: Decides whether resources name an unknown GPU type.
        env_resolver: Looks up variables in container environments.
    """

    def __init__(
        self,
        policy: ValidationPolicy = DEFAULT_POLICY,
        gpu_resolver: GpuTypeResolver = is_unknown_gpu_resource_type,
        env_resolver: EnvVarResolver = lookup_env_var,
    ) -> None:
        self._policy = policy
        self._gpu_resolver = gpu_resolver
        self._env_resolver = env_resolver

    @property
    def policy(self) -> ValidationPolicy:
        return self._policy

    def validate(
        self,
        operation: Operation | str,
        old: InferenceService | None,
        new: InferenceService | None,
    ) -> AdmissionResult:
        """Validate an admission request for the given operation."""
        operation = Operation(operation)
        if operation == Operation.CREATE:
            return self.validate_create(self._require(new, operation))
        if operation == Operation.UPDATE:
            return self.validate_update(old, self._require(new, operation))
        return self.validate_delete(old if old is not None else new)

    def validate_create(self, isvc: InferenceService) -> AdmissionResult:
        logger.info(f"validate create: {isvc.name}")
        return self._validate(isvc)

    def validate_update(self, old: InferenceService | None, new: InferenceService) -> AdmissionResult:  # noqa: ARG002
        logger.info(f"validate update: {new.name}")
        return self._validate(new)

    def validate_delete(self, isvc: InferenceService | None) -> AdmissionResult:
        logger.info(f"validate delete: {isvc.name if isvc else '<unknown>'}")
        return AdmissionResult.accept()

    def _require(self, isvc: InferenceService | None, operation: Operation) -> InferenceService:
        if isvc is None:
            raise ValueError(f"{operation.value} request carries no InferenceService")
        return isvc

    def _rules(self, isvc: InferenceService) -> Iterator[Callable[[], AdmissionError | None]]:
        yield lambda: validate_name(isvc)
        yield lambda: resolve_autoscaler_class(isvc, self._policy)
        yield lambda: validate_target_utilization(isvc)
        yield lambda: validate_multi_node(isvc, self._policy, self._gpu_resolver, self._env_resolver)
        yield lambda: validate_collocation_storage_uri(isvc.spec.predictor, self._env_resolver)
        for _, component in isvc.components():
            yield lambda component=component: validate_component(component, isvc.annotations, self._policy)

    def _validate(self, isvc: InferenceService) -> AdmissionResult:
        # Warnings are part of the admission contract but no rule emits any yet.
        warnings: list[str] = []
        for rule in self._rules(isvc):
            error = rule()
            if error is not None:
                logger.info(f"rejected InferenceService {isvc.name!r} ({error.category.value}): {error.message}")
                return AdmissionResult.reject(error, warnings)
        return AdmissionResult.accept(warnings)
