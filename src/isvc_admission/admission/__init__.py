"""InferenceService admission validation engine.

Exports:
    Models:
        - InferenceService: The resource under validation
        - ValidationPolicy: Process-wide allow-lists

    Validation:
        - InferenceServiceValidator: Runs the rules for an admission request
        - AdmissionResult: Accept/reject outcome
        - Operation: Admission request operation

    Errors:
        - AdmissionError: A rejection reason
        - ErrorCategory: Cause of a rejection
"""

from isvc_admission.admission.errors import (
    AdmissionError,
    DecodeError,
    ErrorCategory,
    InvalidAnnotationError,
)
from isvc_admission.admission.models import InferenceService
from isvc_admission.admission.policy import DEFAULT_POLICY, ValidationPolicy
from isvc_admission.admission.validator import (
    AdmissionResult,
    InferenceServiceValidator,
    Operation,
)

__all__ = [
    # Models
    "InferenceService",
    "ValidationPolicy",
    "DEFAULT_POLICY",
    # Validation
    "InferenceServiceValidator",
    "AdmissionResult",
    "Operation",
    # Errors
    "AdmissionError",
    "DecodeError",
    "ErrorCategory",
    "InvalidAnnotationError",
]
