"""Fixtures for admission validation tests."""

from collections.abc import Callable
from typing import Any

import pytest

from isvc_admission.admission.constants import AUTOSCALER_CLASS_ANNOTATION
from isvc_admission.admission.models import InferenceService
from isvc_admission.admission.policy import DEFAULT_POLICY, ValidationPolicy
from isvc_admission.admission.validator import InferenceServiceValidator

MakeIsvc = Callable[..., InferenceService]


@pytest.fixture
def policy() -> ValidationPolicy:
    """Default validation policy."""
    return DEFAULT_POLICY


@pytest.fixture
def validator(policy: ValidationPolicy) -> InferenceServiceValidator:
    """Validator with the default policy and real resolvers."""
    return InferenceServiceValidator(policy)


@pytest.fixture
def sklearn_predictor() -> dict[str, Any]:
    """Minimal valid predictor with a single built-in implementation."""
    return {"sklearn": {"storageUri": "gs://kfserving-examples/models/sklearn/1.0/model"}}


@pytest.fixture
def multi_node_predictor() -> dict[str, Any]:
    """Predictor that passes every multi-node check."""
    return {
        "model": {
            "modelFormat": {"name": "huggingface"},
            "storageUri": "pvc://model-pvc/llama-3-8b",
            "resources": {"limits": {"nvidia.com/gpu": "1"}},
        },
        "workerSpec": {
            "pipelineParallelSize": 2,
            "tensorParallelSize": 1,
            "containers": [
                {"name": "worker-container", "resources": {"limits": {"nvidia.com/gpu": "1"}}},
            ],
        },
    }


@pytest.fixture
def make_isvc(sklearn_predictor: dict[str, Any]) -> MakeIsvc:
    """Build an InferenceService from plain manifest fragments."""

    def _create_isvc(
        name: str = "sklearn-iris",
        annotations: dict[str, str] | None = None,
        predictor: dict[str, Any] | None = None,
        transformer: dict[str, Any] | None = None,
        explainer: dict[str, Any] | None = None,
    ) -> InferenceService:
        spec: dict[str, Any] = {"predictor": predictor if predictor is not None else sklearn_predictor}
        if transformer is not None:
            spec["transformer"] = transformer
        if explainer is not None:
            spec["explainer"] = explainer
        return InferenceService.model_validate(
            {
                "apiVersion": "serving.kserve.io/v1beta1",
                "kind": "InferenceService",
                "metadata": {
                    "name": name,
                    "namespace": "kserve-test",
                    "annotations": annotations or {},
                },
                "spec": spec,
            }
        )

    return _create_isvc


@pytest.fixture
def make_multi_node_isvc(make_isvc: MakeIsvc, multi_node_predictor: dict[str, Any]) -> MakeIsvc:
    """Build a multi-node InferenceService, external autoscaler unless overridden."""

    def _create_isvc(
        predictor: dict[str, Any] | None = None,
        annotations: dict[str, str] | None = None,
    ) -> InferenceService:
        if annotations is None:
            annotations = {AUTOSCALER_CLASS_ANNOTATION: "external"}
        return make_isvc(
            name="llama-multi-node",
            annotations=annotations,
            predictor=predictor if predictor is not None else multi_node_predictor,
        )

    return _create_isvc
