"""Admission validation for KServe InferenceService resources."""

__version__ = "0.1.0"
