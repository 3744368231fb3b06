"""Component shape and collocation rules."""

from __future__ import annotations

from collections.abc import Mapping

from isvc_admission.admission.constants import STORAGE_URI_ENV, TRANSFORMER_CONTAINER_NAME
from isvc_admission.admission.errors import AdmissionError, ErrorCategory
from isvc_admission.admission.models import Component, PredictorSpec
from isvc_admission.admission.policy import ValidationPolicy
from isvc_admission.admission.resolvers import EnvVarResolver, lookup_env_var
from isvc_admission.admission.rules.autoscaler import validate_scaling_extension

STORAGE_URI_IN_TRANSFORMER_ERROR = "storage uri should not be specified in transformer container"


def validate_exactly_one_implementation(component: Component) -> AdmissionError | None:
    """Reject components with zero or several implementation variants."""
    if len(component.get_implementations()) == 1:
        return None
    return AdmissionError(
        f"exactly one of [{', '.join(component.implementation_names())}] "
        f"must be specified in {type(component).__name__}",
        ErrorCategory.COMPONENT_SHAPE,
    )


def validate_collocation_storage_uri(
    predictor: PredictorSpec,
    env_resolver: EnvVarResolver = lookup_env_var,
) -> AdmissionError | None:
    """Reject a collocated transformer container that sets its own STORAGE_URI."""
    for container in predictor.containers:
        if container.name == TRANSFORMER_CONTAINER_NAME:
            if env_resolver(container.env, STORAGE_URI_ENV)[1]:
                return AdmissionError(STORAGE_URI_IN_TRANSFORMER_ERROR, ErrorCategory.COMPONENT_SHAPE)
            break
    return None


def validate_component(
    component: Component,
    annotations: Mapping[str, str],
    policy: ValidationPolicy,
) -> AdmissionError | None:
    """Run shape, implementation, extension and scaling checks for one component."""
    error = validate_exactly_one_implementation(component)
    if error:
        return error

    implementation = component.get_implementations()[0]

    for check in (
        implementation.validate_implementation,
        component.get_extensions().validate_extensions,
        lambda: validate_scaling_extension(annotations, component.get_extensions(), policy),
    ):
        error = check()
        if error:
            return error
    return None
