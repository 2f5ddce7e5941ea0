"""Command line interface for Network Topology CDK.

Usage:
    network-topology plan [--config PATH] [overrides]
    network-topology apply [--config PATH] [overrides]
    network-topology destroy [--config PATH] [overrides]

`plan` compiles the topology and prints the resource graph as JSON.
`apply` and `destroy` compile first, then hand the stack to the CDK CLI.

Exit codes:
    0  success
    2  configuration error
    3  dependency error
    4  provisioning error
"""

import argparse
import json
import subprocess
import sys
from pathlib import Path
from typing import Sequence

from .config import Settings, TopologyConfig, build_topology_config, load_topology_config
from .exceptions import ConfigurationError, DependencyError, ProvisioningError
from .logger import get_logger
from .logging_config import configure_logging
from .project_settings import stack_name
from .settings import get_settings
from .topology.compiler import compile_config
from .tracing import setup_tracing

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_CONFIGURATION_ERROR = 2
EXIT_DEPENDENCY_ERROR = 3
EXIT_PROVISIONING_ERROR = 4

# CLI verb -> CDK CLI verb
CDK_VERBS = {
    "apply": "deploy",
    "destroy": "destroy",
}


def _parse_tag(value: str) -> tuple[str, str]:
    key, sep, tag_value = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Tag must look like KEY=VALUE, got '{value}'")
    return key, tag_value


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per verb."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-c",
        "--config",
        type=Path,
        help="YAML topology file (defaults to TOPOLOGY_CONFIG / config.yaml)",
    )
    common.add_argument("--name", help="Name prefix for every resource")
    common.add_argument("--region", help="Target region")
    common.add_argument("--public-subnet-count", type=int, help="Number of public subnets")
    common.add_argument("--private-subnet-count", type=int, help="Number of private subnets")
    common.add_argument(
        "--tag",
        action="append",
        type=_parse_tag,
        metavar="KEY=VALUE",
        help="Extra tag applied to every resource (repeatable)",
    )

    parser = argparse.ArgumentParser(
        prog="network-topology",
        description="Compile and provision a VPC topology",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  network-topology plan --config config.yaml
  network-topology plan --private-subnet-count 0
  network-topology apply --tag Team=platform
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("plan", parents=[common], help="Compile and print the resource graph")
    subparsers.add_parser("apply", parents=[common], help="Compile and deploy the stack")
    subparsers.add_parser("destroy", parents=[common], help="Destroy the deployed stack")
    return parser


def resolve_config(args: argparse.Namespace, settings: Settings) -> TopologyConfig:
    """Load the topology file and apply command line overrides.

    Without --config a missing default file means built-in defaults.
    """
    overrides = {
        "name": args.name,
        "region": args.region,
        "public_subnet_count": args.public_subnet_count,
        "private_subnet_count": args.private_subnet_count,
        "tags": dict(args.tag) if args.tag else None,
    }

    config_path = args.config or settings.topology_config
    if args.config is None and not config_path.exists():
        return build_topology_config(**overrides)
    return load_topology_config(config_path, **overrides)


def run_cdk(command: str, config: TopologyConfig, settings: Settings) -> None:
    """Run the CDK CLI for a compiled topology.

    The resolved configuration travels as the ``topology`` context value so
    the CDK app compiles exactly what was validated here.

    Raises:
        ProvisioningError: If the CDK CLI is missing or exits non-zero
    """
    verb = CDK_VERBS[command]
    stack = stack_name(config.name)
    cmd = [
        settings.cdk.binary,
        verb,
        stack,
        "--context",
        f"topology={config.model_dump_json()}",
    ]
    if verb == "deploy":
        cmd.extend(["--require-approval", settings.cdk.require_approval])
    else:
        cmd.append("--force")

    logger.info("cdk_command_start", command=verb, stack=stack)
    try:
        subprocess.run(cmd, check=True, cwd=settings.cdk.app_dir)
    except FileNotFoundError as e:
        raise ProvisioningError(
            "CDK CLI not found",
            binary=settings.cdk.binary,
            stack=stack,
        ) from e
    except subprocess.CalledProcessError as e:
        raise ProvisioningError(
            f"cdk {verb} failed",
            stack=stack,
            returncode=e.returncode,
        ) from e
    logger.info("cdk_command_success", command=verb, stack=stack)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = build_parser().parse_args(argv)

    settings = get_settings()
    configure_logging(
        log_level=settings.log_level.value,
        json_logs=settings.is_production,
    )
    if settings.otlp_endpoint:
        setup_tracing(
            otlp_endpoint=settings.otlp_endpoint,
            service_version=settings.app_version,
            environment=settings.environment.value,
        )

    try:
        config = resolve_config(args, settings)
        graph = compile_config(config)
        if args.command == "plan":
            print(json.dumps(graph.to_document(), indent=2))
        else:
            run_cdk(args.command, config, settings)
    except ConfigurationError as e:
        print(f"\n❌ Configuration Error: {e}\n", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    except DependencyError as e:
        print(f"\n❌ Dependency Error: {e}\n", file=sys.stderr)
        return EXIT_DEPENDENCY_ERROR
    except ProvisioningError as e:
        print(f"\n❌ Provisioning Error: {e}\n", file=sys.stderr)
        return EXIT_PROVISIONING_ERROR

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
