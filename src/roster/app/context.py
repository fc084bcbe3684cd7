"""Startup container for Roster.

Runs the one-shot startup sequence (discover sites, reconcile the
certificate policy, build the approval gate and the router) and holds
the results.  Stored on the Flask app via ``app.extensions["container"]``.

Usage::

    from roster.app.context import Container, get_container

    container = Container.bootstrap(settings)
    app = create_app(config=cfg, container=container)

    # inside a request
    c = get_container()
    c.registry.domains
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from flask import current_app

from roster.app.router import HostRouter
from roster.approval.gate import DomainApprovalGate
from roster.policy.models import PolicyDefaults
from roster.policy.reconciler import reconcile_policy_file
from roster.policy.store import PolicyStore
from roster.sites.registry import discover

if TYPE_CHECKING:
    from roster.config.settings import RosterSettings
    from roster.policy.reconciler import ReconcileResult
    from roster.sites.registry import DomainRegistry

log = logging.getLogger(__name__)


def policy_defaults(settings: RosterSettings) -> PolicyDefaults:
    """Issuance defaults derived from configuration."""
    return PolicyDefaults(
        base_path=str(Path(settings.certificates.config_dir).resolve()),
        subscriber_email=settings.maintainer_email,
    )


def policy_store(settings: RosterSettings) -> PolicyStore:
    return PolicyStore(settings.certificates.policy_path)


def discover_sites(settings: RosterSettings) -> DomainRegistry:
    """Scan the configured site source."""
    return discover(
        settings.sites.path,
        handler_module=settings.sites.handler_module,
        handler_attribute=settings.sites.handler_attribute,
    )


class Container:
    """Everything built at startup, shared read-only afterwards.

    Parameters
    ----------
    settings:
        The typed settings tree.
    registry:
        The discovered (or declared) sites.
    policy:
        Result of the startup reconciliation, if one was run.

    The request path only uses :attr:`router`.  :attr:`approval_gate` is
    bound to the same registry snapshot for callers that embed Roster and
    hand the gate to their certificate automation as its approval callback.

    """

    def __init__(
        self,
        settings: RosterSettings,
        registry: DomainRegistry,
        policy: ReconcileResult | None = None,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.policy = policy
        self.approval_gate = DomainApprovalGate(
            registry,
            contact_email=settings.maintainer_email,
        )
        self.router = HostRouter(registry)

    @classmethod
    def bootstrap(
        cls,
        settings: RosterSettings,
        registry: DomainRegistry | None = None,
    ) -> Container:
        """Run discovery and reconciliation, then build the container.

        A *registry* may be supplied to skip directory discovery.

        Raises
        ------
        DiscoveryError
            If the site source cannot be read.
        PolicyCorruptError
            If the existing policy document cannot be parsed.
        PersistenceError
            If the policy document cannot be written.

        """
        if registry is None:
            registry = discover_sites(settings)
        log.info(
            "Serving %d site(s): %s",
            len(registry),
            ", ".join(registry.root_domains) or "-",
        )

        result = reconcile_policy_file(
            policy_store(settings),
            registry.domains,
            policy_defaults(settings),
            lock=settings.certificates.lock,
        )
        log.info(
            "Certificate automation mode: %s (%s)",
            "staging" if settings.certificates.staging else "production",
            settings.certificates.directory_url,
        )
        return cls(settings, registry, policy=result)


def get_container() -> Container:
    """Return the container of the current Flask app."""
    return current_app.extensions["container"]
