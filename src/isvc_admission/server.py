"""FastMCP server exposing InferenceService admission validation."""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from isvc_admission.admission.errors import DecodeError
from isvc_admission.admission.policy import ValidationPolicy
from isvc_admission.admission.review import (
    build_decode_error_response,
    build_review_response,
    decode_inference_service,
    parse_review,
)
from isvc_admission.admission.validator import InferenceServiceValidator, Operation
from isvc_admission.clients.cluster_config import load_validation_policy
from isvc_admission.clients.k8s import K8sClient
from isvc_admission.config import AdmissionSettings, get_config

logger = logging.getLogger(__name__)


class AdmissionServer:
    """Admission server holding the validator and its policy."""

    def __init__(self, config: AdmissionSettings | None = None) -> None:
        self._config = config or get_config()
        self._validator: InferenceServiceValidator | None = None
        self._mcp: FastMCP | None = None

    @property
    def config(self) -> AdmissionSettings:
        """Get server configuration."""
        return self._config

    @property
    def validator(self) -> InferenceServiceValidator:
        """Get the validator.

        Raises:
            RuntimeError: If the policy has not been loaded yet.
        """
        if self._validator is None:
            raise RuntimeError("Server not initialized. Validator not available.")
        return self._validator

    @property
    def mcp(self) -> FastMCP:
        """Get the MCP server instance.

        Raises:
            RuntimeError: If server is not initialized.
        """
        if self._mcp is None:
            raise RuntimeError("Server not initialized.")
        return self._mcp

    def load_policy(self) -> ValidationPolicy:
        """Read the validation policy once and build the validator from it."""
        k8s: K8sClient | None = None
        if self._config.load_cluster_config:
            k8s = K8sClient(self._config)
            k8s.connect()
        try:
            policy = load_validation_policy(k8s, self._config)
        finally:
            if k8s is not None:
                k8s.disconnect()

        self._validator = InferenceServiceValidator(policy)
        return policy

    def handle_review(self, body: dict[str, Any]) -> dict[str, Any]:
        """Answer an AdmissionReview body with an AdmissionReview response."""
        raw_request = body.get("request")
        uid = str(raw_request.get("uid", "")) if isinstance(raw_request, dict) else ""
        try:
            request = parse_review(body)
            result = self.validator.validate(request.operation, request.old_object, request.object)
        except DecodeError as e:
            logger.warning(f"Rejecting undecodable admission request {uid}: {e}")
            return build_decode_error_response(uid, e)
        except ValueError as e:
            logger.warning(f"Rejecting admission request {uid}: {e}")
            return build_decode_error_response(uid, DecodeError(str(e)))
        return build_review_response(request.uid, result)

    def create_mcp(self) -> FastMCP:
        """Create and configure the FastMCP server."""
        if self._validator is None:
            self.load_policy()

        mcp = FastMCP(
            name="isvc-admission",
            instructions="Admission validation for KServe InferenceService resources - "
            "checks naming, autoscaler configuration, multi-node serving and "
            "component shape before a resource is persisted.",
            host=self._config.host,
            port=self._config.port,
        )
        self._mcp = mcp

        self._register_tools(mcp)
        self._register_resources(mcp)
        self._register_webhook(mcp)
        return mcp

    def _register_tools(self, mcp: FastMCP) -> None:
        server_self = self

        @mcp.tool()
        def validate_inference_service(
            manifest: dict[str, Any],
            operation: str = "CREATE",
        ) -> dict[str, Any]:
            """Validate an InferenceService manifest as the admission webhook would.

            Args:
                manifest: The InferenceService object (apiVersion, metadata, spec).
                operation: Admission operation - "CREATE", "UPDATE" or "DELETE".

            Returns:
                Whether the resource would be admitted, with the rejection
                reason and category when it is not.
            """
            try:
                isvc = decode_inference_service(manifest)
                op = Operation(operation.upper())
            except (DecodeError, ValueError) as e:
                return {"allowed": False, "warnings": [], "message": str(e), "category": None}

            result = server_self.validator.validate(op, None, isvc)
            return result.model_dump(mode="json")

    def _register_resources(self, mcp: FastMCP) -> None:
        server_self = self

        @mcp.resource("admission://policy")
        def admission_policy() -> dict[str, Any]:
            """Get the allow-lists the validator enforces.

            Returns autoscaler classes, metric vocabularies per backend and
            recognized GPU resource types.
            """
            return server_self.validator.policy.summary()

    def _register_webhook(self, mcp: FastMCP) -> None:
        server_self = self

        @mcp.custom_route(self._config.webhook_path, methods=["POST"])
        async def validate_webhook(request: Request) -> Response:
            try:
                body = await request.json()
            except ValueError:
                return JSONResponse({"error": "request body must be JSON"}, status_code=400)
            if not isinstance(body, dict):
                return JSONResponse({"error": "request body must be a JSON object"}, status_code=400)
            return JSONResponse(server_self.handle_review(body))

        logger.info(f"Serving AdmissionReview requests on {self._config.webhook_path}")


# Global server instance
_server: AdmissionServer | None = None


def get_server() -> AdmissionServer:
    """Get the global server instance."""
    global _server
    if _server is None:
        _server = AdmissionServer()
    return _server


def create_server(config: AdmissionSettings | None = None) -> FastMCP:
    """Create and return the MCP server instance.

    This is the main entry point for creating the server.
    """
    global _server
    _server = AdmissionServer(config)
    return _server.create_mcp()
