"""Sites subcommand — list what discovery finds."""

from __future__ import annotations

import sys


def run_sites(config, args) -> None:
    """Handle ``sites`` subcommands."""
    from roster.app.context import discover_sites
    from roster.core.errors import DiscoveryError

    if args.sites_command != "list":
        sys.stderr.write("Usage: roster -c CONFIG sites list\n")
        sys.exit(1)

    try:
        registry = discover_sites(config.settings)
    except DiscoveryError as exc:
        sys.stderr.write(f"roster: error: {exc}\n")
        sys.exit(1)

    if not len(registry):
        sys.stdout.write("No sites discovered.\n")
        return
    for site in registry:
        sys.stdout.write(f"{site.domain}\t{' '.join(site.names)}\n")
