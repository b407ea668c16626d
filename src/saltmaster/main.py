"""
saltmaster CLI.

Usage:
    saltmaster <command> [args]
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from saltmaster.config.settings import get_settings
from saltmaster.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="saltmaster", description="Provision a SaltStack master")
    parser.add_argument("--log-level", help="Log level (default: SALTMASTER_LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command")

    preview_parser = subparsers.add_parser("preview", help="Show what a run would do (dry-run)")
    preview_parser.add_argument("--stack", help="Stack name (default: SALTMASTER_STACK)")
    preview_parser.add_argument("--config", dest="config_path", help="Path to stack file")
    preview_parser.add_argument("--output", choices=["text", "json"], default="text",
                                help="Output format")
    preview_parser.add_argument("--check", action="store_true",
                                help="Also check that the provider APIs are reachable")

    up_parser = subparsers.add_parser("up", help="Provision or update the salt master")
    up_parser.add_argument("--stack", help="Stack name (default: SALTMASTER_STACK)")
    up_parser.add_argument("--config", dest="config_path", help="Path to stack file")
    up_parser.add_argument("--output", choices=["text", "json"], default="text",
                           help="Output format")
    up_parser.add_argument("-v", "--verbose", action="store_true",
                           help="List recorded resources")

    outputs_parser = subparsers.add_parser("outputs", help="Show published stack outputs")
    outputs_parser.add_argument("name", nargs="?", help="Print a single output value")
    outputs_parser.add_argument("--stack", help="Stack name (default: SALTMASTER_STACK)")
    outputs_parser.add_argument("--output", choices=["text", "json"], default="text",
                                help="Output format")

    render_parser = subparsers.add_parser("render-bootstrap",
                                          help="Render the cloud-init user data")
    render_parser.add_argument("--stack", help="Stack name (default: SALTMASTER_STACK)")
    render_parser.add_argument("--config", dest="config_path", help="Path to stack file")
    render_parser.add_argument("--token", help="Peer token to embed")
    render_parser.add_argument("-o", "--out", dest="out", help="Write payload to file")

    subparsers.add_parser("providers", help="List registered providers")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, json=settings.log_json)

    if args.command == "preview":
        from saltmaster.cli.preview import preview_command
        sys.exit(preview_command(
            stack=args.stack,
            config_path=args.config_path,
            output_format=args.output,
            check=args.check,
        ))

    if args.command == "up":
        from saltmaster.cli.up import up_command
        sys.exit(up_command(
            stack=args.stack,
            config_path=args.config_path,
            output_format=args.output,
            verbose=args.verbose,
        ))

    if args.command == "outputs":
        from saltmaster.cli.outputs import outputs_command
        sys.exit(outputs_command(stack=args.stack, name=args.name, output_format=args.output))

    if args.command == "render-bootstrap":
        from saltmaster.cli.bootstrap import render_bootstrap_command
        sys.exit(render_bootstrap_command(
            stack=args.stack,
            config_path=args.config_path,
            token=args.token,
            output=args.out,
        ))

    if args.command == "providers":
        from saltmaster.providers import list_providers
        for spec in list_providers():
            capabilities = ",".join(spec.capabilities) or "-"
            print(f"{spec.name}\t{capabilities}\t{spec.version or 'unknown'}\t{spec.description or ''}")
        sys.exit(0)

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    main()
