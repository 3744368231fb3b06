"""Entry point for the InferenceService admission server."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from isvc_admission import __version__
from isvc_admission.admission.errors import DecodeError
from isvc_admission.admission.review import decode_inference_service
from isvc_admission.config import (
    AdmissionSettings,
    AuthMode,
    LogLevel,
    TransportMode,
)
from isvc_admission.utils.errors import AdmissionServerError


def setup_logging(level: LogLevel) -> None:
    """Configure logging for the server."""
    logging.basicConfig(
        level=level.value,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="isvc-admission",
        description="Admission validation server for KServe InferenceServices",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Offline validation
    parser.add_argument(
        "--check",
        nargs="+",
        metavar="FILE",
        default=None,
        help="Validate InferenceService manifests (YAML or JSON) and exit",
    )

    # Transport options
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default=None,
        help="Transport mode (default: from config or streamable-http)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind HTTP server to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind HTTP server to (default: 9443)",
    )

    # Auth options
    parser.add_argument(
        "--auth-mode",
        choices=["auto", "kubeconfig", "token"],
        default=None,
        help="Authentication mode (default: auto)",
    )
    parser.add_argument(
        "--kubeconfig",
        default=None,
        help="Path to kubeconfig file",
    )
    parser.add_argument(
        "--context",
        default=None,
        help="Kubeconfig context to use",
    )

    # Cluster configuration
    parser.add_argument(
        "--no-cluster-config",
        action="store_true",
        help="Do not read the inferenceservice-config ConfigMap; use built-in defaults",
    )
    parser.add_argument(
        "--gpu-resource-types",
        default=None,
        help="Comma-separated extra resource names to accept as GPUs",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AdmissionSettings:
    """Build config from args, falling back to environment/defaults."""
    config_kwargs: dict[str, Any] = {}

    if args.transport:
        config_kwargs["transport"] = TransportMode(args.transport)

    if args.host:
        config_kwargs["host"] = args.host

    if args.port:
        config_kwargs["port"] = args.port

    if args.auth_mode:
        config_kwargs["auth_mode"] = AuthMode(args.auth_mode)

    if args.kubeconfig:
        config_kwargs["kubeconfig_path"] = args.kubeconfig

    if args.context:
        config_kwargs["kubeconfig_context"] = args.context

    if args.no_cluster_config:
        config_kwargs["load_cluster_config"] = False

    if args.gpu_resource_types:
        config_kwargs["custom_gpu_resource_types"] = args.gpu_resource_types

    if args.log_level:
        config_kwargs["log_level"] = LogLevel(args.log_level)

    return AdmissionSettings(**config_kwargs)


def load_manifests(path: Path) -> list[dict[str, Any]]:
    """Load every InferenceService document from a YAML or JSON file."""
    with open(path) as f:
        documents = list(yaml.safe_load_all(f))
    return [doc for doc in documents if isinstance(doc, dict) and doc.get("kind") == "InferenceService"]


def check_manifests(paths: list[str], config: AdmissionSettings) -> int:
    """Validate manifest files and print one line per InferenceService.

    Returns:
        0 if every InferenceService is admitted, 1 otherwise.
    """
    from isvc_admission.server import AdmissionServer

    server = AdmissionServer(config)
    server.load_policy()

    exit_code = 0
    for raw_path in paths:
        path = Path(raw_path)
        try:
            manifests = load_manifests(path)
        except (OSError, yaml.YAMLError) as e:
            print(f"{path}: error: {e}")
            exit_code = 1
            continue

        if not manifests:
            print(f"{path}: no InferenceService found")
            continue

        for manifest in manifests:
            name = (manifest.get("metadata") or {}).get("name", "<unnamed>")
            try:
                isvc = decode_inference_service(manifest)
            except DecodeError as e:
                print(f"{path}: {name}: rejected: {e}")
                exit_code = 1
                continue

            result = server.validator.validate("CREATE", None, isvc)
            if result.allowed:
                print(f"{path}: {name}: allowed")
            else:
                print(f"{path}: {name}: rejected ({result.category.value}): {result.message}")
                exit_code = 1
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = build_config(args)

    setup_logging(config.log_level)

    logger = logging.getLogger(__name__)

    try:
        warnings = config.validate_auth_config()
        for warning in warnings:
            logger.warning(warning)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    if args.check:
        try:
            return check_manifests(args.check, config)
        except AdmissionServerError as e:
            logger.error(f"Unable to load validation policy: {e}")
            return 1

    logger.info(f"Starting isvc-admission server v{__version__}")

    from isvc_admission.server import create_server

    try:
        mcp = create_server(config)
    except AdmissionServerError as e:
        logger.error(f"Unable to load validation policy: {e}")
        return 1

    transport_name: str = config.transport.value
    if config.transport != TransportMode.STDIO:
        logger.info(f"Running with {transport_name} transport on {config.host}:{config.port}")
    else:
        logger.info(f"Running with {transport_name} transport")

    mcp.run(transport=transport_name)  # type: ignore[arg-type]
    return 0


if __name__ == "__main__":
    sys.exit(main())
