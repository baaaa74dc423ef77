#!/usr/bin/env python3
# ============================================================================
# FUNCTIONS DEPLOYER - COMMAND LINE
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core - CLI entry point
# PURPOSE: Deploy, invoke, inspect and remove a serverless.yml service
# CREATED: 12 OCT 2026
# ============================================================================
"""
Functions Deployer CLI

Usage:
    python main.py deploy                            # Full deployment
    python main.py deploy-function -f hello          # One function, existing app
    python main.py invoke -f hello --data '{"name": "azure"}'
    python main.py invoke -f ingest --type queue --data '"payload"'
    python main.py logs -f hello                     # Output of the last invocation
    python main.py logs -f hello --tail              # Follow the live log stream
    python main.py resolve                           # Print function.json, no Azure calls
    python main.py remove                            # Delete the resource group

Options common to every command:
    --path DIR        Service directory containing serverless.yml (default: cwd)
    --opt KEY=VALUE   Value for {{ opt.KEY }} in the manifest (repeatable)
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict, List, Optional

from __version__ import __version__, BUILD_DATE
from bindings import BindingError, CatalogLoadError
from core.logging import ComponentType, configure_logging, get_logger
from orchestrator import DeploymentError, DeploymentOrchestrator
from orchestrator.deployment import HTTP_EVENT_TYPE
from services import ManifestError, ManifestService, PackagingError

logger = get_logger(__name__, ComponentType.CLI)

COMMANDS = ("deploy", "deploy-function", "remove", "invoke", "logs", "resolve")

# Commands that name a single function
FUNCTION_COMMANDS = ("deploy-function", "invoke", "logs")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="functions-deployer",
        description="Deploy a serverless.yml service to Azure Functions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s deploy --path ./my-service --opt stage=dev
  %(prog)s invoke -f hello --data '{"name": "azure"}'
  %(prog)s resolve -f hello > function.json
  %(prog)s logs -f hello --tail

Environment Variables:
  LOG_LEVEL                         Log level (default: INFO)
  LOG_FORMAT                        "json" for structured logs
  KUDU_READY_WAIT_SECONDS           Wait after creating the app (default: 10)
  <provider.subscriptionId> etc.    Credentials, named in serverless.yml
        """,
    )
    parser.add_argument("command", choices=COMMANDS, help="Lifecycle command")
    parser.add_argument(
        "--function", "-f",
        help="Function name (deploy-function, invoke, logs, resolve)",
    )
    parser.add_argument(
        "--path", "-p",
        default=os.getcwd(),
        help="Service directory (default: current directory)",
    )
    parser.add_argument(
        "--opt", "-o",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Template option for {{ opt.KEY }} (repeatable)",
    )
    parser.add_argument(
        "--type", "-t",
        dest="event_type",
        default=HTTP_EVENT_TYPE,
        help="Event type for invoke (default: http)",
    )
    parser.add_argument(
        "--data", "-d",
        help="JSON invocation payload (query parameters for http)",
    )
    parser.add_argument(
        "--tail",
        action="store_true",
        help="logs: follow the live log stream instead of the last invocation",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        help="Log level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__} ({BUILD_DATE})",
    )
    return parser


def parse_options(pairs: List[str]) -> Dict[str, str]:
    """Parse repeated KEY=VALUE options."""
    options: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Option must be KEY=VALUE: {pair}")
        options[key.strip()] = value
    return options


def parse_data(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON data: {e}") from e


async def run(args: argparse.Namespace) -> int:
    """Execute one command; returns the process exit code."""
    if args.command in FUNCTION_COMMANDS and not args.function:
        print(f"ERROR: {args.command} requires --function", file=sys.stderr)
        return 2

    manifest = ManifestService(args.path, parse_options(args.opt)).load()

    async with DeploymentOrchestrator(manifest) as orchestrator:
        if args.command == "resolve":
            names = [args.function] if args.function else None
            resolved = orchestrator.resolve(names)
            output = {name: meta.to_packager_params() for name, meta in resolved.items()}
            print(json.dumps(output, indent=4))

        elif args.command == "deploy":
            result = await orchestrator.deploy()
            print(json.dumps(result.to_dict(), indent=2, default=str))

        elif args.command == "deploy-function":
            result = await orchestrator.deploy_function(args.function)
            print(json.dumps(result.to_dict(), indent=2, default=str))

        elif args.command == "remove":
            await orchestrator.remove()
            print(f"Removed {orchestrator.context.resource_group}")

        elif args.command == "invoke":
            body = await orchestrator.invoke(
                args.function, args.event_type, parse_data(args.data)
            )
            print(body)

        elif args.command == "logs" and args.tail:
            async for chunk in orchestrator.stream_logs(args.function):
                sys.stdout.write(chunk)
                sys.stdout.flush()

        elif args.command == "logs":
            output = await orchestrator.logs(args.function)
            print(output if output is not None else f"No invocations of {args.function}")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    # stdout carries command output (resolve JSON, invoke bodies); logs go to stderr
    configure_logging(level=args.log_level, stream=sys.stderr)

    try:
        return asyncio.run(run(args))
    except DeploymentError as e:
        logger.error(f"Deployment failed in phase {e.phase.value}")
        for name, reason in e.failures.items():
            print(f"  {name}: {reason}", file=sys.stderr)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except (ManifestError, CatalogLoadError, BindingError, PackagingError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
