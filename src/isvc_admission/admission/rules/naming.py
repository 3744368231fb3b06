"""InferenceService name validation."""

import re

from isvc_admission.admission.errors import AdmissionError, ErrorCategory
from isvc_admission.admission.models import InferenceService

ISVC_NAME_FMT = "[a-z]([-a-z0-9]*[a-z0-9])?"
ISVC_NAME_REGEXP = re.compile("^" + ISVC_NAME_FMT + "$")


def validate_name(isvc: InferenceService) -> AdmissionError | None:
    """Reject names that are not DNS-label-like."""
    # fullmatch so a trailing newline cannot slip past "$"
    if not ISVC_NAME_REGEXP.fullmatch(isvc.name):
        return AdmissionError(
            f'the InferenceService "{isvc.name}" is invalid: a InferenceService name must consist '
            "of lower case alphanumeric characters or '-', and must start with alphabetical "
            f"character. (e.g. \"my-name\" or \"abc-123\", regex used for validation is '{ISVC_NAME_FMT}')",
            ErrorCategory.MALFORMED_IDENTIFIER,
        )
    return None
