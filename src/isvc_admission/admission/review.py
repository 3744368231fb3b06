"""Mapping between AdmissionReview envelopes and admission results.

Only the admission.k8s.io/v1 envelope is handled. Transport (HTTP) lives
in the server module.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from isvc_admission.admission.errors import DecodeError
from isvc_admission.admission.models import InferenceService
from isvc_admission.admission.validator import AdmissionResult, Operation

ADMISSION_API_VERSION = "admission.k8s.io/v1"
ADMISSION_KIND = "AdmissionReview"


class AdmissionRequest(BaseModel):
    """Decoded admission request."""

    uid: str = Field(..., description="Request UID echoed in the response")
    operation: Operation = Field(..., description="CREATE, UPDATE, DELETE or CONNECT")
    name: str | None = Field(None, description="Name of the object, if known")
    namespace: str | None = Field(None, description="Namespace of the object")
    object: InferenceService | None = Field(None, description="Incoming object")
    old_object: InferenceService | None = Field(None, description="Existing object")


def decode_inference_service(obj: dict[str, Any] | None) -> InferenceService | None:
    """Decode a raw object into an InferenceService.

    Raises:
        DecodeError: If the object does not have an InferenceService shape.
    """
    if obj is None:
        return None
    try:
        return InferenceService.model_validate(obj)
    except ValidationError as e:
        raise DecodeError(f"unable to decode InferenceService: {e}") from e


def parse_review(body: dict[str, Any]) -> AdmissionRequest:
    """Decode an AdmissionReview body into an AdmissionRequest.

    Raises:
        DecodeError: If the envelope or its objects cannot be decoded.
    """
    if body.get("kind") != ADMISSION_KIND:
        raise DecodeError(f"expected kind {ADMISSION_KIND}, got {body.get('kind')!r}")
    request = body.get("request")
    if not isinstance(request, dict):
        raise DecodeError("AdmissionReview carries no request")

    uid = request.get("uid")
    if not uid:
        raise DecodeError("AdmissionReview request has no uid")
    try:
        operation = Operation(request.get("operation"))
    except ValueError as e:
        raise DecodeError(f"unsupported operation {request.get('operation')!r}") from e

    return AdmissionRequest(
        uid=uid,
        operation=operation,
        name=request.get("name"),
        namespace=request.get("namespace"),
        object=decode_inference_service(request.get("object")),
        old_object=decode_inference_service(request.get("oldObject")),
    )


def build_review_response(uid: str, result: AdmissionResult) -> dict[str, Any]:
    """Encode an AdmissionResult as an AdmissionReview response."""
    response: dict[str, Any] = {"uid": uid, "allowed": result.allowed}
    if result.warnings:
        response["warnings"] = list(result.warnings)
    if not result.allowed:
        response["status"] = {
            "code": 403,
            "reason": "Forbidden",
            "message": result.message,
        }
    return {
        "apiVersion": ADMISSION_API_VERSION,
        "kind": ADMISSION_KIND,
        "response": response,
    }


def build_decode_error_response(uid: str, error: DecodeError) -> dict[str, Any]:
    """Encode an undecodable request as a rejected AdmissionReview."""
    return {
        "apiVersion": ADMISSION_API_VERSION,
        "kind": ADMISSION_KIND,
        "response": {
            "uid": uid,
            "allowed": False,
            "status": {"code": 400, "reason": "BadRequest", "message": str(error)},
        },
    }
