"""Rule evaluators for InferenceService admission.

Each evaluator returns an AdmissionError describing the first violation it
finds, or None when the resource passes.
"""

from isvc_admission.admission.rules.autoscaler import (
    resolve_autoscaler_class,
    select_scaling_evaluator,
    validate_scaling_extension,
    validate_target_utilization,
)
from isvc_admission.admission.rules.components import (
    validate_collocation_storage_uri,
    validate_component,
    validate_exactly_one_implementation,
)
from isvc_admission.admission.rules.multinode import validate_multi_node
from isvc_admission.admission.rules.naming import validate_name

__all__ = [
    "resolve_autoscaler_class",
    "select_scaling_evaluator",
    "validate_collocation_storage_uri",
    "validate_component",
    "validate_exactly_one_implementation",
    "validate_multi_node",
    "validate_name",
    "validate_scaling_extension",
    "validate_target_utilization",
]
