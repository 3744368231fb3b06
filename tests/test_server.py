"""Tests for the admission server."""

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from mcp.server.fastmcp import FastMCP

from isvc_admission.admission.policy import DEFAULT_POLICY
from isvc_admission.config import AdmissionSettings
from isvc_admission.server import AdmissionServer, create_server, get_server
from isvc_admission.utils.errors import ClusterConfigError


@pytest.fixture
def settings() -> AdmissionSettings:
    """Settings that never touch a cluster."""
    return AdmissionSettings(load_cluster_config=False, custom_gpu_resource_types=["example.com/tpu"])


@pytest.fixture
def server(settings: AdmissionSettings) -> AdmissionServer:
    """Admission server with its policy loaded."""
    server = AdmissionServer(settings)
    server.load_policy()
    return server


def review(obj: dict[str, Any] | None, uid: str = "req-1", operation: str = "CREATE") -> dict[str, Any]:
    return {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "request": {"uid": uid, "operation": operation, "object": obj},
    }


def isvc(name: str = "sklearn-iris", annotations: dict[str, str] | None = None) -> dict[str, Any]:
    return {
        "apiVersion": "serving.kserve.io/v1beta1",
        "kind": "InferenceService",
        "metadata": {"name": name, "annotations": annotations or {}},
        "spec": {"predictor": {"sklearn": {"storageUri": "gs://kfserving-examples/models/sklearn/1.0/model"}}},
    }


class TestLoadPolicy:
    """Test policy loading at startup."""

    def test_without_cluster(self, settings: AdmissionSettings) -> None:
        server = AdmissionServer(settings)

        policy = server.load_policy()

        assert policy.gpu_resource_types[-1] == "example.com/tpu"
        assert server.validator.policy is policy

    def test_validator_requires_policy(self, settings: AdmissionSettings) -> None:
        with pytest.raises(RuntimeError, match="Validator not available"):
            _ = AdmissionServer(settings).validator

    def test_with_cluster(self) -> None:
        settings = AdmissionSettings(load_cluster_config=True)
        mock_k8s = MagicMock()

        with (
            patch("isvc_admission.server.K8sClient", return_value=mock_k8s),
            patch("isvc_admission.server.load_validation_policy", return_value=DEFAULT_POLICY) as load,
        ):
            policy = AdmissionServer(settings).load_policy()

        assert policy is DEFAULT_POLICY
        mock_k8s.connect.assert_called_once()
        mock_k8s.disconnect.assert_called_once()
        load.assert_called_once_with(mock_k8s, settings)

    def test_disconnects_on_failure(self) -> None:
        settings = AdmissionSettings(load_cluster_config=True)
        mock_k8s = MagicMock()

        with (
            patch("isvc_admission.server.K8sClient", return_value=mock_k8s),
            patch(
                "isvc_admission.server.load_validation_policy",
                side_effect=ClusterConfigError("Invalid JSON in 'multiNode'"),
            ),
            pytest.raises(ClusterConfigError),
        ):
            AdmissionServer(settings).load_policy()

        mock_k8s.disconnect.assert_called_once()


class TestHandleReview:
    """Test answering AdmissionReview requests."""

    def test_allowed(self, server: AdmissionServer) -> None:
        response = server.handle_review(review(isvc()))

        assert response["kind"] == "AdmissionReview"
        assert response["response"] == {"uid": "req-1", "allowed": True}

    def test_rejected(self, server: AdmissionServer) -> None:
        body = review(isvc(annotations={"serving.kserve.io/autoscalerClass": "foo"}), uid="req-2")

        response = server.handle_review(body)["response"]

        assert response["uid"] == "req-2"
        assert response["allowed"] is False
        assert response["status"]["code"] == 403
        assert response["status"]["message"] == "[foo] is not a supported autoscaler class type"

    def test_delete_allowed(self, server: AdmissionServer) -> None:
        body = review(None, operation="DELETE")
        body["request"]["oldObject"] = isvc(name="Bad_Name")

        assert server.handle_review(body)["response"]["allowed"] is True

    def test_undecodable_object(self, server: AdmissionServer) -> None:
        response = server.handle_review(review({"metadata": {"name": "x"}}, uid="req-3"))["response"]

        assert response["uid"] == "req-3"
        assert response["allowed"] is False
        assert response["status"]["code"] == 400

    @pytest.mark.parametrize("request_field", [["x"], "CREATE", 42])
    def test_request_not_an_object(self, server: AdmissionServer, request_field: Any) -> None:
        response = server.handle_review({"kind": "AdmissionReview", "request": request_field})["response"]

        assert response["uid"] == ""
        assert response["allowed"] is False
        assert response["status"]["code"] == 400
        assert response["status"]["message"] == "AdmissionReview carries no request"

    def test_create_without_object(self, server: AdmissionServer) -> None:
        response = server.handle_review(review(None))["response"]

        assert response["allowed"] is False
        assert response["status"]["code"] == 400
        assert "carries no InferenceService" in response["status"]["message"]


class TestCreateServer:
    """Test MCP server creation."""

    def test_create_mcp(self, settings: AdmissionSettings) -> None:
        server = AdmissionServer(settings)

        mcp = server.create_mcp()

        assert isinstance(mcp, FastMCP)
        assert server.mcp is mcp
        assert server.validator.policy.gpu_resource_types[-1] == "example.com/tpu"

    def test_mcp_requires_creation(self, settings: AdmissionSettings) -> None:
        with pytest.raises(RuntimeError, match="Server not initialized"):
            _ = AdmissionServer(settings).mcp

    def test_create_server_sets_global(self, settings: AdmissionSettings) -> None:
        mcp = create_server(settings)

        assert get_server().mcp is mcp


@pytest.fixture
def mock_mcp() -> MagicMock:
    """Create a mock FastMCP server that captures registrations."""
    mock = MagicMock()
    registered_tools: dict = {}
    registered_resources: dict = {}
    registered_routes: dict = {}

    def capture_tool():
        def decorator(f):
            registered_tools[f.__name__] = f
            return f

        return decorator

    def capture_resource(uri: str):
        def decorator(f):
            registered_resources[uri] = f
            return f

        return decorator

    def capture_route(path: str, methods: list[str]):
        def decorator(f):
            registered_routes[(path, tuple(methods))] = f
            return f

        return decorator

    mock.tool = capture_tool
    mock.resource = capture_resource
    mock.custom_route = capture_route
    mock._registered_tools = registered_tools
    mock._registered_resources = registered_resources
    mock._registered_routes = registered_routes
    return mock


class TestValidateInferenceServiceTool:
    """Test the validate_inference_service tool."""

    @pytest.fixture
    def tool(self, server: AdmissionServer, mock_mcp: MagicMock):
        server._register_tools(mock_mcp)
        return mock_mcp._registered_tools["validate_inference_service"]

    def test_allowed(self, tool) -> None:
        assert tool(isvc()) == {"allowed": True, "warnings": [], "message": None, "category": None}

    def test_rejected(self, tool) -> None:
        result = tool(isvc(annotations={"serving.kserve.io/autoscalerClass": "foo"}))

        assert result["allowed"] is False
        assert result["category"] == "autoscaler-config"
        assert result["message"] == "[foo] is not a supported autoscaler class type"

    def test_operation_case_insensitive(self, tool) -> None:
        assert tool(isvc(name="Bad_Name"), operation="delete")["allowed"] is True

    def test_undecodable_manifest(self, tool) -> None:
        result = tool({"metadata": {"name": "x"}})

        assert result["allowed"] is False
        assert result["category"] is None
        assert "unable to decode InferenceService" in result["message"]

    def test_unknown_operation(self, tool) -> None:
        result = tool(isvc(), operation="PATCH")

        assert result["allowed"] is False
        assert "PATCH" in result["message"]


class TestPolicyResource:
    """Test the admission://policy resource."""

    def test_policy_summary(self, server: AdmissionServer, mock_mcp: MagicMock) -> None:
        server._register_resources(mock_mcp)

        summary = mock_mcp._registered_resources["admission://policy"]()

        assert summary["gpu_resource_types"][-1] == "example.com/tpu"
        assert summary["allowed_autoscaler_classes"] == ["hpa", "keda", "kpa", "external"]


class TestWebhookRoute:
    """Test the AdmissionReview HTTP route."""

    @pytest.fixture
    def handler(self, server: AdmissionServer, mock_mcp: MagicMock):
        server._register_webhook(mock_mcp)
        return mock_mcp._registered_routes[("/validate-inferenceservices", ("POST",))]

    @staticmethod
    def make_request(body: Any = None, error: Exception | None = None) -> MagicMock:
        request = MagicMock()
        request.json = AsyncMock(return_value=body, side_effect=error)
        return request

    @pytest.mark.asyncio
    async def test_review_answered(self, handler) -> None:
        response = await handler(self.make_request(review(isvc(), uid="req-9")))

        assert response.status_code == 200
        assert json.loads(response.body)["response"] == {"uid": "req-9", "allowed": True}

    @pytest.mark.asyncio
    async def test_rejection_is_200(self, handler) -> None:
        body = review(isvc(annotations={"serving.kserve.io/autoscalerClass": "foo"}))

        response = await handler(self.make_request(body))

        assert response.status_code == 200
        assert json.loads(response.body)["response"]["status"]["code"] == 403

    @pytest.mark.asyncio
    async def test_non_json_body(self, handler) -> None:
        response = await handler(self.make_request(error=json.JSONDecodeError("Expecting value", "x", 0)))

        assert response.status_code == 400
        assert json.loads(response.body) == {"error": "request body must be JSON"}

    @pytest.mark.asyncio
    async def test_non_object_body(self, handler) -> None:
        response = await handler(self.make_request(["not", "an", "object"]))

        assert response.status_code == 400
        assert json.loads(response.body) == {"error": "request body must be a JSON object"}

    @pytest.mark.asyncio
    async def test_malformed_request_field(self, handler) -> None:
        response = await handler(self.make_request({"kind": "AdmissionReview", "request": ["x"]}))

        assert response.status_code == 200
        review_response = json.loads(response.body)["response"]
        assert review_response["uid"] == ""
        assert review_response["status"]["code"] == 400
