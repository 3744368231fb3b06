"""Build the validation policy from cluster-wide serving configuration."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from isvc_admission.admission.policy import DEFAULT_POLICY, ValidationPolicy
from isvc_admission.config import AdmissionSettings
from isvc_admission.utils.errors import ClusterConfigError, NotFoundError

if TYPE_CHECKING:
    from isvc_admission.clients.k8s import K8sClient

logger = logging.getLogger(__name__)

MULTI_NODE_CONFIG_KEY = "multiNode"
CUSTOM_GPU_LIST_KEY = "customGPUResourceTypeList"


def parse_multi_node_config(raw: str) -> list[str]:
    """Extract the custom GPU resource types from the multiNode JSON blob.

    Raises:
        ClusterConfigError: If the blob is not valid JSON or has the wrong shape.
    """
    try:
        parsed: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ClusterConfigError(f"Invalid JSON in '{MULTI_NODE_CONFIG_KEY}': {e}") from e

    if not isinstance(parsed, dict):
        raise ClusterConfigError(f"'{MULTI_NODE_CONFIG_KEY}' must be a JSON object")

    gpu_types = parsed.get(CUSTOM_GPU_LIST_KEY, [])
    if not isinstance(gpu_types, list) or not all(isinstance(t, str) for t in gpu_types):
        raise ClusterConfigError(f"'{CUSTOM_GPU_LIST_KEY}' must be a list of strings")
    return gpu_types


def policy_from_config_data(
    data: dict[str, str],
    extra_gpu_types: list[str] | None = None,
    base: ValidationPolicy = DEFAULT_POLICY,
) -> ValidationPolicy:
    """Derive a policy from ConfigMap data plus locally configured GPU types."""
    gpu_types: list[str] = []
    raw = data.get(MULTI_NODE_CONFIG_KEY)
    if raw:
        gpu_types.extend(parse_multi_node_config(raw))
    gpu_types.extend(extra_gpu_types or [])
    return base.with_custom_gpu_types(gpu_types)


def load_validation_policy(k8s: K8sClient | None, settings: AdmissionSettings) -> ValidationPolicy:
    """Load the process-wide validation policy.

    Reads the serving ConfigMap when a client is given and cluster loading
    is enabled. A missing ConfigMap falls back to the defaults.

    Raises:
        ClusterConfigError: If the ConfigMap content is malformed.
    """
    data: dict[str, str] = {}
    if k8s is not None and settings.load_cluster_config:
        try:
            data = k8s.read_config_map(settings.config_map_name, settings.controller_namespace)
        except NotFoundError as e:
            logger.warning(f"{e}; using default validation policy")

    policy = policy_from_config_data(data, settings.custom_gpu_resource_types)
    logger.info(f"Validation policy loaded with {len(policy.gpu_resource_types)} GPU resource types")
    return policy
