"""Certificate-policy reconciliation.

Derives the policy document from the registry's domain set and merges
it with the document already on disk.  The merge keeps the ``renewAt``
timestamp the certificate automation recorded for every domain that is
still served; domains that are no longer served are dropped.

Reconciliation is idempotent: the new document is serialised
deterministically and only written when it differs from the existing
one.

Usage::

    result = reconcile(registry.domains, store.load(), defaults)
    if result.changed:
        store.write(result.text)

or, with locking and logging, :func:`reconcile_policy_file`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from roster.core.domains import strip_www, wants_www_altname, www_form
from roster.policy.models import (
    CertificatePolicyDocument,
    PolicyDefaults,
    SiteCertEntry,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from roster.policy.store import PolicyStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation."""

    document: CertificatePolicyDocument
    changed: bool
    text: str
    created: bool = False


def serialize(data: Mapping[str, Any]) -> str:
    """Deterministic text form used both for writing and for comparison."""
    return json.dumps(data, indent=2, allow_nan=False) + "\n"


def _existing_renewals(existing: Mapping[str, Any] | None) -> dict[str, Any]:
    """Map subject → ``renewAt`` from a raw existing document.

    The first entry wins when a subject is listed twice.
    """
    renewals: dict[str, Any] = {}
    if not existing:
        return renewals
    for site in existing.get("sites") or ():
        subject = site.get("subject")
        if subject is None or subject in renewals:
            continue
        renewals[subject] = site.get("renewAt")
    return renewals


def build_site_entries(
    domains: Iterable[str],
    existing: Mapping[str, Any] | None = None,
) -> tuple[SiteCertEntry, ...]:
    """Reduce *domains* to root domains and build one entry per root.

    Entries are sorted by subject.
    """
    roots = sorted({strip_www(d) for d in domains})
    renewals = _existing_renewals(existing)

    entries = []
    for root in roots:
        altnames = [root]
        if wants_www_altname(root):
            altnames.append(www_form(root))
        entries.append(
            SiteCertEntry(
                subject=root,
                altnames=tuple(altnames),
                renew_at=renewals.get(root),
            ),
        )
    return tuple(entries)


def reconcile(
    domains: Iterable[str],
    existing: Mapping[str, Any] | None,
    defaults: PolicyDefaults,
) -> ReconcileResult:
    """Compute the new policy document and whether it differs from *existing*.

    Parameters
    ----------
    domains:
        Every served host name; ``www.`` forms are folded into their root.
    existing:
        The raw document currently on disk, or ``None`` if there is none.
    defaults:
        Issuance defaults for the ``defaults`` block.

    """
    document = CertificatePolicyDocument(
        defaults=defaults,
        sites=build_site_entries(domains, existing),
    )
    text = serialize(document.to_dict())

    if existing is None:
        return ReconcileResult(document=document, changed=True, text=text, created=True)

    changed = text != serialize(existing)
    return ReconcileResult(document=document, changed=changed, text=text)


def reconcile_policy_file(
    store: PolicyStore,
    domains: Iterable[str],
    defaults: PolicyDefaults,
    *,
    lock: bool = True,
) -> ReconcileResult:
    """Reconcile the document held by *store* and write it back if changed.

    Raises
    ------
    PolicyCorruptError
        If the existing document cannot be parsed.  Nothing is written.
    PersistenceError
        If the new document cannot be written.

    """
    if lock:
        with store.lock():
            return _reconcile_locked(store, domains, defaults)
    return _reconcile_locked(store, domains, defaults)


def _reconcile_locked(
    store: PolicyStore,
    domains: Iterable[str],
    defaults: PolicyDefaults,
) -> ReconcileResult:
    existing = store.load()
    result = reconcile(domains, existing, defaults)

    if not result.changed:
        log.info("Certificate policy unchanged; %s not rewritten", store.path)
        return result

    store.write(result.text)
    if result.created:
        log.info(
            "Certificate policy created at %s (%d site(s))",
            store.path,
            len(result.document.sites),
        )
    else:
        log.info(
            "Certificate policy updated at %s (%d site(s))",
            store.path,
            len(result.document.sites),
        )
    return result
