"""Validation of multi-node (workerSpec) predictors."""

from __future__ import annotations

from isvc_admission.admission.constants import (
    AUTOSCALER_CLASS_ANNOTATION,
    GPU_RESOURCE_TYPES_ANNOTATION,
    PIPELINE_PARALLEL_SIZE_ENV,
    TENSOR_PARALLEL_SIZE_ENV,
    AutoscalerClass,
)
from isvc_admission.admission.errors import AdmissionError, ErrorCategory, InvalidAnnotationError
from isvc_admission.admission.models import (
    InferenceService,
    PredictorExtensionSpec,
    ResourceRequirements,
)
from isvc_admission.admission.policy import ValidationPolicy
from isvc_admission.admission.resolvers import (
    EnvVarResolver,
    GpuTypeResolver,
    is_unknown_gpu_resource_type,
    lookup_env_var,
    storage_protocol,
)

MULTIPLE_WORKER_CONTAINERS_ERROR = (
    'the InferenceService "{}" is invalid: setting multiple containers in workerSpec is not allowed'
)
PIPELINE_PARALLEL_SIZE_ENV_ERROR = (
    'the InferenceService "{}" is invalid: setting ' + PIPELINE_PARALLEL_SIZE_ENV + " in environment "
    "variables is not allowed"
)
TENSOR_PARALLEL_SIZE_ENV_ERROR = (
    'the InferenceService "{}" is invalid: setting ' + TENSOR_PARALLEL_SIZE_ENV + " in environment "
    "variables is not allowed"
)
UNKNOWN_GPU_TYPE_ERROR = (
    'the InferenceService "{}" is invalid: Unknown GPU resource type. Set '
    "'" + GPU_RESOURCE_TYPES_ANNOTATION + "' annotation to use custom gpu resource type"
)
MISSING_STORAGE_URI_ERROR = 'the InferenceService "{}" is invalid: StorageURI must be set for multinode enabled'
UNSUPPORTED_STORAGE_PROTOCOL_ERROR = (
    'the InferenceService "{}" is invalid: Multi-node InferenceService supports only '
    "'pvc' Storage Protocol. Unsupported protocol '{}'"
)
UNSUPPORTED_AUTOSCALER_ERROR = (
    'the InferenceService "{}" is invalid: Multi-node InferenceService supports only '
    "'external' autoscaler. Unsupported autoscaler class '{}'"
)
PIPELINE_PARALLEL_SIZE_VALUE_ERROR = (
    'the InferenceService "{}" is invalid: WorkerSpec.PipelineParallelSize cannot be less than 2({})'
)
TENSOR_PARALLEL_SIZE_VALUE_ERROR = (
    'the InferenceService "{}" is invalid: WorkerSpec.TensorParallelSize cannot be less than 1({})'
)


def _multi_node_error(template: str, *args: object) -> AdmissionError:
    return AdmissionError(template.format(*args), ErrorCategory.MULTI_NODE)


def _check_gpu_type(
    isvc: InferenceService,
    resources: ResourceRequirements,
    policy: ValidationPolicy,
    gpu_resolver: GpuTypeResolver,
) -> AdmissionError | None:
    try:
        unknown = gpu_resolver(resources, isvc.annotations, policy.gpu_resource_types)
    except InvalidAnnotationError as e:
        return AdmissionError(str(e), ErrorCategory.INVALID_SPEC)
    if unknown:
        return _multi_node_error(UNKNOWN_GPU_TYPE_ERROR, isvc.name)
    return None


def validate_multi_node(
    isvc: InferenceService,
    policy: ValidationPolicy,
    gpu_resolver: GpuTypeResolver = is_unknown_gpu_resource_type,
    env_resolver: EnvVarResolver = lookup_env_var,
) -> AdmissionError | None:
    """Check a predictor with a workerSpec can be served across nodes.

    The parallelism environment checks apply to built-in model servers
    only; GPU and storage checks apply to any single implementation,
    custom containers included. Checks run in a fixed order and the first
    failure is returned.
    """
    predictor = isvc.spec.predictor
    worker_spec = predictor.worker_spec
    if worker_spec is None:
        return None

    if len(worker_spec.containers) > 1:
        return _multi_node_error(MULTIPLE_WORKER_CONTAINERS_ERROR, isvc.name)

    implementation = predictor.get_implementation()
    if implementation is not None:
        if isinstance(implementation, PredictorExtensionSpec):
            if env_resolver(implementation.env, PIPELINE_PARALLEL_SIZE_ENV)[1]:
                return _multi_node_error(PIPELINE_PARALLEL_SIZE_ENV_ERROR, isvc.name)
            if env_resolver(implementation.env, TENSOR_PARALLEL_SIZE_ENV)[1]:
                return _multi_node_error(TENSOR_PARALLEL_SIZE_ENV_ERROR, isvc.name)

        error = _check_gpu_type(isvc, implementation.resources, policy, gpu_resolver)
        if error:
            return error

        storage_uri = implementation.get_storage_uri()
        if storage_uri is None:
            return _multi_node_error(MISSING_STORAGE_URI_ERROR, isvc.name)
        protocol = storage_protocol(storage_uri)
        if protocol != "pvc":
            return _multi_node_error(UNSUPPORTED_STORAGE_PROTOCOL_ERROR, isvc.name, protocol)

    autoscaler_class = isvc.annotations.get(AUTOSCALER_CLASS_ANNOTATION, "")
    if autoscaler_class != AutoscalerClass.EXTERNAL.value:
        return _multi_node_error(UNSUPPORTED_AUTOSCALER_ERROR, isvc.name, autoscaler_class)

    pipeline_parallel_size = worker_spec.pipeline_parallel_size
    if pipeline_parallel_size is not None and pipeline_parallel_size < 2:
        return _multi_node_error(PIPELINE_PARALLEL_SIZE_VALUE_ERROR, isvc.name, pipeline_parallel_size)

    tensor_parallel_size = worker_spec.tensor_parallel_size
    if tensor_parallel_size is not None and tensor_parallel_size < 1:
        return _multi_node_error(TENSOR_PARALLEL_SIZE_VALUE_ERROR, isvc.name, tensor_parallel_size)

    for container in worker_spec.containers:
        error = _check_gpu_type(isvc, container.resources, policy, gpu_resolver)
        if error:
            return error
    return None
