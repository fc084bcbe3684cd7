"""Policy subcommand — reconcile or show the certificate policy."""

from __future__ import annotations

import json
import sys


def run_policy(config, args) -> None:
    """Handle ``policy`` subcommands."""
    from roster.app.context import (
        discover_sites,
        policy_defaults,
        policy_store,
    )
    from roster.core.errors import RosterError
    from roster.policy.reconciler import reconcile_policy_file

    settings = config.settings
    store = policy_store(settings)

    try:
        if args.policy_command == "reconcile":
            registry = discover_sites(settings)
            result = reconcile_policy_file(
                store,
                registry.domains,
                policy_defaults(settings),
                lock=settings.certificates.lock,
            )
            state = "created" if result.created else "updated" if result.changed else "unchanged"
            sys.stdout.write(
                f"{store.path}: {state} ({len(result.document.sites)} site(s))\n",
            )
        elif args.policy_command == "show":
            data = store.load()
            if data is None:
                sys.stderr.write(f"No certificate policy at {store.path}\n")
                sys.exit(1)
            sys.stdout.write(json.dumps(data, indent=2) + "\n")
        else:
            sys.stderr.write("Usage: roster -c CONFIG policy {reconcile|show}\n")
            sys.exit(1)
    except RosterError as exc:
        sys.stderr.write(f"roster: error: {exc}\n")
        sys.exit(1)
