"""Capability resolvers used by admission rules.

These are small pure lookups over container environment and resource
requirements. The validator receives them as callables so tests can swap
in fakes.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Protocol

from isvc_admission.admission.constants import (
    BASIC_RESOURCE_TYPES,
    GPU_RESOURCE_TYPES_ANNOTATION,
)
from isvc_admission.admission.errors import InvalidAnnotationError
from isvc_admission.admission.models import EnvVar, ResourceRequirements


class GpuTypeResolver(Protocol):
    """Decides whether resource requirements name an unrecognized GPU type."""

    def __call__(
        self,
        resources: ResourceRequirements,
        annotations: Mapping[str, str],
        allowed: Sequence[str],
    ) -> bool: ...


class EnvVarResolver(Protocol):
    """Looks up a variable in a container environment."""

    def __call__(self, env: Iterable[EnvVar], key: str) -> tuple[str | None, bool]: ...


def lookup_env_var(env: Iterable[EnvVar], key: str) -> tuple[str | None, bool]:
    """Find an environment variable by name.

    Returns:
        Tuple of (value, found). ``value`` is None for valueFrom entries.
    """
    for var in env:
        if var.name == key:
            return var.value, True
    return None, False


def custom_gpu_resource_types(annotations: Mapping[str, str]) -> list[str]:
    """Parse the GPU resource type annotation (a JSON array of names).

    Raises:
        InvalidAnnotationError: If the annotation is not a JSON list of strings.
    """
    raw = annotations.get(GPU_RESOURCE_TYPES_ANNOTATION)
    if raw is None or not raw.strip():
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidAnnotationError(GPU_RESOURCE_TYPES_ANNOTATION, raw, str(e)) from e
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise InvalidAnnotationError(
            GPU_RESOURCE_TYPES_ANNOTATION, raw, "expected a JSON array of strings"
        )
    return parsed


def is_unknown_gpu_resource_type(
    resources: ResourceRequirements,
    annotations: Mapping[str, str],
    allowed: Sequence[str],
) -> bool:
    """Check whether any extended resource is neither allowed nor annotated.

    Every resource name outside cpu, memory and storage is taken to be an
    accelerator request.
    """
    requested = {
        name
        for name in (*resources.limits.keys(), *resources.requests.keys())
        if name not in BASIC_RESOURCE_TYPES
    }
    if not requested:
        return False

    known = set(allowed)
    known.update(custom_gpu_resource_types(annotations))
    return any(name not in known for name in requested)


def storage_protocol(uri: str) -> str:
    """Return the scheme of a storage URI, or the whole URI if it has none."""
    return uri.split("://", 1)[0]
