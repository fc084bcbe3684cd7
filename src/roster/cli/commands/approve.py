"""Approve subcommand — query the approval gate from a shell hook.

Prints the approval payload as JSON and exits 0, or prints the
rejection and exits 2.
"""

from __future__ import annotations

import json
import sys

EXIT_REJECTED = 2


def run_approve(config, args) -> None:
    """Run one approval decision against the discovered sites."""
    from roster.app.context import discover_sites
    from roster.approval.gate import DomainApprovalGate
    from roster.core.errors import DiscoveryError, DomainNotApprovedError

    try:
        registry = discover_sites(config.settings)
    except DiscoveryError as exc:
        sys.stderr.write(f"roster: error: {exc}\n")
        sys.exit(1)

    gate = DomainApprovalGate(registry, contact_email=config.settings.maintainer_email)
    certs = {"altnames": args.renewal} if args.renewal else None

    try:
        payload = gate({"domain": args.domain}, certs)
    except DomainNotApprovedError as exc:
        sys.stderr.write(f"{exc}\n")
        sys.exit(EXIT_REJECTED)

    sys.stdout.write(json.dumps(payload, indent=2) + "\n")
