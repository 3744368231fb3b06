"""Tests for AdmissionReview decoding and encoding."""

from typing import Any

import pytest

from isvc_admission.admission.errors import AdmissionError, DecodeError, ErrorCategory
from isvc_admission.admission.review import (
    ADMISSION_API_VERSION,
    build_decode_error_response,
    build_review_response,
    decode_inference_service,
    parse_review,
)
from isvc_admission.admission.validator import AdmissionResult, Operation


@pytest.fixture
def isvc_object() -> dict[str, Any]:
    """Raw InferenceService as carried in an AdmissionReview."""
    return {
        "apiVersion": "serving.kserve.io/v1beta1",
        "kind": "InferenceService",
        "metadata": {"name": "sklearn-iris", "namespace": "kserve-test"},
        "spec": {"predictor": {"sklearn": {"storageUri": "gs://kfserving-examples/models/sklearn/1.0/model"}}},
    }


@pytest.fixture
def review_body(isvc_object: dict[str, Any]) -> dict[str, Any]:
    """AdmissionReview request for a create."""
    return {
        "apiVersion": ADMISSION_API_VERSION,
        "kind": "AdmissionReview",
        "request": {
            "uid": "705ab4f5-6393-11e8-b7cc-42010a800002",
            "operation": "CREATE",
            "name": "sklearn-iris",
            "namespace": "kserve-test",
            "object": isvc_object,
            "oldObject": None,
        },
    }


class TestParseReview:
    """Test decoding AdmissionReview requests."""

    def test_create_request(self, review_body: dict[str, Any]) -> None:
        request = parse_review(review_body)

        assert request.uid == "705ab4f5-6393-11e8-b7cc-42010a800002"
        assert request.operation == Operation.CREATE
        assert request.object is not None
        assert request.object.name == "sklearn-iris"
        assert request.old_object is None

    def test_update_request(self, review_body: dict[str, Any], isvc_object: dict[str, Any]) -> None:
        review_body["request"]["operation"] = "UPDATE"
        review_body["request"]["oldObject"] = isvc_object

        request = parse_review(review_body)

        assert request.operation == Operation.UPDATE
        assert request.old_object is not None

    def test_wrong_kind(self, review_body: dict[str, Any]) -> None:
        review_body["kind"] = "ConversionReview"

        with pytest.raises(DecodeError, match="expected kind AdmissionReview"):
            parse_review(review_body)

    def test_missing_request(self) -> None:
        with pytest.raises(DecodeError, match="carries no request"):
            parse_review({"kind": "AdmissionReview"})

    def test_missing_uid(self, review_body: dict[str, Any]) -> None:
        del review_body["request"]["uid"]

        with pytest.raises(DecodeError, match="has no uid"):
            parse_review(review_body)

    def test_unsupported_operation(self, review_body: dict[str, Any]) -> None:
        review_body["request"]["operation"] = "PATCH"

        with pytest.raises(DecodeError, match="unsupported operation"):
            parse_review(review_body)

    def test_undecodable_object(self, review_body: dict[str, Any]) -> None:
        review_body["request"]["object"] = {"metadata": {"name": "x"}, "spec": {"predictor": "sklearn"}}

        with pytest.raises(DecodeError, match="unable to decode InferenceService"):
            parse_review(review_body)


class TestDecodeInferenceService:
    """Test decoding a single object."""

    def test_none(self) -> None:
        assert decode_inference_service(None) is None

    def test_missing_spec(self) -> None:
        with pytest.raises(DecodeError):
            decode_inference_service({"metadata": {"name": "x"}})


class TestBuildReviewResponse:
    """Test encoding admission results."""

    def test_allowed(self) -> None:
        response = build_review_response("uid-1", AdmissionResult.accept())

        assert response == {
            "apiVersion": ADMISSION_API_VERSION,
            "kind": "AdmissionReview",
            "response": {"uid": "uid-1", "allowed": True},
        }

    def test_rejected(self) -> None:
        result = AdmissionResult.reject(AdmissionError("[foo] is not a supported autoscaler class type"))

        response = build_review_response("uid-2", result)["response"]

        assert response["allowed"] is False
        assert response["status"] == {
            "code": 403,
            "reason": "Forbidden",
            "message": "[foo] is not a supported autoscaler class type",
        }

    def test_warnings_passed_through(self) -> None:
        result = AdmissionResult.reject(AdmissionError("bad", ErrorCategory.OUT_OF_RANGE), warnings=["deprecated"])

        response = build_review_response("uid-3", result)["response"]

        assert response["warnings"] == ["deprecated"]

    def test_decode_error(self) -> None:
        response = build_decode_error_response("uid-4", DecodeError("unable to decode"))["response"]

        assert response["allowed"] is False
        assert response["status"]["code"] == 400
        assert response["status"]["reason"] == "BadRequest"
