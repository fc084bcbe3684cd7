"""Roster command-line entry point.

Usage::

    roster -c /etc/roster/config.yaml
    roster -c config.yaml --dev
    roster -c config.yaml --validate-only
    roster -c config.yaml serve --dev
    roster -c config.yaml sites list
    roster -c config.yaml policy reconcile
    roster -c config.yaml policy show
    roster -c config.yaml approve example.com
    roster -c config.yaml approve example.com --renewal example.com www.example.com
    python -m roster -c config.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from roster import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="roster",
        description="Roster: multi-tenant HTTP front door with certificate policy management",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        default=False,
        help="Use Flask's development server instead of gunicorn.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the Roster server")
    # SUPPRESS keeps a top-level --dev from being reset by the subparser default
    serve_parser.add_argument("--dev", action="store_true", default=argparse.SUPPRESS, dest="dev")

    # sites
    sites_parser = subparsers.add_parser("sites", help="Inspect discovered sites")
    sites_sub = sites_parser.add_subparsers(dest="sites_command")
    sites_sub.add_parser("list", help="List discovered sites and their host names")

    # policy
    policy_parser = subparsers.add_parser("policy", help="Certificate policy management")
    policy_sub = policy_parser.add_subparsers(dest="policy_command")
    policy_sub.add_parser("reconcile", help="Reconcile the policy document with the sites")
    policy_sub.add_parser("show", help="Print the current policy document")

    # approve
    approve_parser = subparsers.add_parser(
        "approve",
        help="Ask the approval gate about a certificate request",
    )
    approve_parser.add_argument("domain", help="Domain the certificate is requested for")
    approve_parser.add_argument(
        "--renewal",
        nargs="+",
        metavar="ALTNAME",
        default=None,
        help="Treat as a renewal of a certificate covering these altnames",
    )

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    sys.stderr.write(f"roster: error: {message}\n")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, dispatches."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    try:
        from roster.config import ConfigValidationError, RosterConfig

        config = RosterConfig(config_file=str(config_path))
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)
    except Exception as exc:
        if args.debug:
            raise
        _print_error(f"failed to load configuration: {exc}")
        sys.exit(1)

    # -- replace bootstrap logging with structured logging ---
    from roster.logging import configure_logging

    configure_logging(config.settings.logging)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    command = args.command

    if command == "sites":
        from roster.cli.commands.sites import run_sites

        run_sites(config, args)
    elif command == "policy":
        from roster.cli.commands.policy import run_policy

        run_policy(config, args)
    elif command == "approve":
        from roster.cli.commands.approve import run_approve

        run_approve(config, args)
    else:
        # Default: serve (no subcommand = serve)
        _print_settings_summary(config)
        _run_serve(config, args)


def _run_serve(config, args) -> None:
    """Run the startup sequence and start the server."""
    from roster.core.errors import RosterError

    try:
        from roster.cli.commands.serve import run_serve

        run_serve(config, args)
    except RosterError as exc:
        if args.debug:
            raise
        _print_error(f"startup failed: {exc}")
        sys.exit(1)
    except RuntimeError as exc:
        _print_error(str(exc))
        sys.exit(1)


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration."""
    s = config.settings
    lines = [
        f"Roster {_get_version()}",
        f"  maintainer:   {s.maintainer_email}",
        f"  sites:        {s.sites.path} ({s.sites.handler_module}:{s.sites.handler_attribute})",
        f"  policy:       {s.certificates.policy_path}",
        f"  acme mode:    {'staging' if s.certificates.staging else 'production'}",
        f"  listen:       {s.server.bind}:{s.server.port}"
        f" ({'tls' if s.server.tls_enabled else 'plain'})",
    ]
    sys.stdout.write("\n".join(lines) + "\n")
