"""Errors produced while admitting an InferenceService."""

from enum import Enum


class ErrorCategory(str, Enum):
    """Cause of an admission rejection."""

    MALFORMED_IDENTIFIER = "malformed-identifier"
    AUTOSCALER_CONFIG = "autoscaler-config"
    OUT_OF_RANGE = "out-of-range"
    MULTI_NODE = "multi-node"
    COMPONENT_SHAPE = "component-shape"
    INVALID_SPEC = "invalid-spec"


class AdmissionError(Exception):
    """A rejection reason for an InferenceService.

    Rule evaluators return instances of this class rather than raising
    them, so the validator can stop at the first failure without
    unwinding through several layers of handlers.
    """

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.INVALID_SPEC) -> None:
        super().__init__(message)
        self.message = message
        self.category = category

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AdmissionError):
            return NotImplemented
        return self.message == other.message and self.category == other.category

    def __hash__(self) -> int:
        return hash((self.message, self.category))

    def __repr__(self) -> str:
        return f"AdmissionError({self.message!r}, category={self.category.value!r})"


class InvalidAnnotationError(ValueError):
    """An annotation value could not be interpreted."""

    def __init__(self, key: str, value: str, reason: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"invalid value {value!r} for annotation {key}: {reason}")


class DecodeError(ValueError):
    """An admission request or object could not be decoded."""

    pass
