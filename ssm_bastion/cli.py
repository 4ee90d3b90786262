"""Argument parsing, configuration loading, and command dispatch."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import platform
import re
import sys

from . import __version__
from .config import AppConfig, AWSConfig, load_config, resolve_region
from .discovery.aws_client import AWSClient
from .discovery.models import build_filters, parse_tags
from .discovery.resolver import BastionResolver
from .exceptions import BastionError, ConfigError
from .logging_config import configure_logging
from .session.connect import start_shell_session
from .session.network import is_port_available, parse_port, parse_remote
from .session.port_forward import PortForwardSession

logger = logging.getLogger(__name__)

PROG = "ssm-bastion"

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([smh]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600}


def parse_duration(value: str) -> float:
    """Parse ``300``, ``300s``, ``5m`` or ``1h`` into seconds."""
    match = _DURATION_PATTERN.match(value)
    if not match:
        raise argparse.ArgumentTypeError(f"invalid duration: {value!r} (e.g. 300s, 5m)")
    seconds = float(match.group(1)) * _DURATION_UNITS[match.group(2)]
    if seconds <= 0:
        raise argparse.ArgumentTypeError("duration must be positive")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Find an EC2 bastion by tags and start an AWS SSM session through it",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to an optional YAML configuration file",
    )
    parser.add_argument(
        "-v", "--version",
        action="store_true",
        help="Show version information and exit",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--region", help="AWS region (default: AWS_DEFAULT_REGION)")
    common.add_argument("--profile", help="AWS named profile (default: boto3 credential chain)")
    common.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")

    pf = subparsers.add_parser(
        "port-forward",
        parents=[common],
        help="Forward a local port to a remote host through the bastion",
        epilog=(
            f"example: {PROG} port-forward --remote db.internal:5432 --local-port 15432"
        ),
    )
    pf.add_argument(
        "--remote",
        required=True,
        help="Remote host and port to forward (host:port)",
    )
    pf.add_argument(
        "--local-port",
        type=int,
        default=0,
        help="Local port number (default: same as remote port)",
    )
    pf.add_argument(
        "--tags",
        help="Comma-separated bastion tags (default: Role=bastion,Function=port-forward)",
    )
    pf.add_argument(
        "--ping-interval",
        type=parse_duration,
        help="TCP ping interval keeping the session alive, e.g. 5m or 300s",
    )

    connect = subparsers.add_parser(
        "connect",
        parents=[common],
        help="Start an interactive SSM session to an instance",
        epilog="If both --target and --tags are given, --target takes precedence.",
    )
    connect.add_argument("--target", help="Target instance ID (e.g. i-1234567890abcdef0)")
    connect.add_argument("--tags", help="Comma-separated tags used to find the instance")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"{PROG} {__version__}\non {platform.system().lower()}_{platform.machine().lower()}")
        return 0

    if not args.command:
        parser.print_help(sys.stderr)
        return 1

    # Load config (minimal logging until config is loaded)
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.logging, verbose=args.verbose)

    try:
        if args.command == "port-forward":
            port_forward_command(args, config)
        else:
            return connect_command(args, config)
    except BastionError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130

    return 0


def _find_bastion(config: AppConfig, region: str, profile: str, tags: str, verbose: bool) -> str:
    expected_tags = parse_tags(tags)
    filters = build_filters(expected_tags)
    client = AWSClient(AWSConfig(region=region, credential_profile=profile))
    resolver = BastionResolver(client, pool_size=config.resolver.pool_size)
    return resolver.resolve(filters, expected_tags, verbose=verbose)


def port_forward_command(args: argparse.Namespace, config: AppConfig) -> None:
    region = resolve_region(config, args.region)
    profile = args.profile or config.aws.credential_profile

    host, remote_port_str = parse_remote(args.remote)
    remote_port = parse_port(remote_port_str)
    local_port = parse_port(str(args.local_port)) if args.local_port else remote_port

    if not is_port_available(local_port):
        raise ConfigError(
            f"Local port {local_port} is already in use. Stop the process using it "
            "or choose a different port with --local-port."
        )

    session_config = config.session
    if args.ping_interval is not None:
        session_config = dataclasses.replace(session_config, ping_interval_seconds=args.ping_interval)

    tags = args.tags or config.tags.default
    logger.debug(
        "Config: remote=%s:%d local_port=%d region=%s tags=%s ping_interval=%ss",
        host, remote_port, local_port, region, tags, session_config.ping_interval_seconds,
    )

    instance_id = _find_bastion(config, region, profile, tags, args.verbose)

    PortForwardSession(
        instance_id=instance_id,
        host=host,
        remote_port=remote_port,
        local_port=local_port,
        region=region,
        session_config=session_config,
        profile=profile,
    ).run()
    logger.info("Port forwarding completed successfully")


def connect_command(args: argparse.Namespace, config: AppConfig) -> int:
    if not args.target and not args.tags:
        raise ConfigError("At least one of --target or --tags must be provided")

    region = resolve_region(config, args.region)
    profile = args.profile or config.aws.credential_profile

    if args.target:
        instance_id = args.target
    else:
        instance_id = _find_bastion(config, region, profile, args.tags, args.verbose)

    start_shell_session(instance_id, region, config.session, profile=profile)
    logger.info("Session completed successfully")
    return 0
