"""Domain approval gate.

The certificate automation asks this gate before every issuance or
renewal.  It is the only thing standing between an attacker-supplied
``Host`` header and a certificate being issued for a name Roster does
not serve.

Two paths per call:

* **Renewal** — an existing certificate is supplied.  Its altnames were
  vetted at original issuance, so they are approved as-is.
* **Fresh issuance** — the requested domain must be in the registry's
  domain set.

:func:`approve` is pure.  :class:`DomainApprovalGate` binds it to a
registry snapshot, adds logging, and accepts the automation's
``(options, certs)`` call shape.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from roster.core.domains import normalize_domain
from roster.core.errors import DomainNotApprovedError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from roster.sites.registry import DomainRegistry

log = logging.getLogger(__name__)
audit_log = logging.getLogger("roster.audit")


@dataclass(frozen=True)
class ApprovalRequest:
    """What the automation wants: a domain plus its requested options."""

    domain: str
    options: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> ApprovalRequest:
        domain = options.get("domain")
        if not isinstance(domain, str) or not domain:
            msg = "approval request is missing 'domain'"
            raise ValueError(msg)
        return cls(domain=domain, options=dict(options))


@dataclass(frozen=True)
class ExistingCertificate:
    """The record of a certificate that is up for renewal."""

    altnames: tuple[str, ...]
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> ExistingCertificate:
        altnames = record.get("altnames")
        if not isinstance(altnames, (list, tuple)) or not altnames:
            msg = "existing certificate record has no 'altnames'"
            raise ValueError(msg)
        extra = {k: v for k, v in record.items() if k != "altnames"}
        return cls(altnames=tuple(altnames), extra=extra)

    def to_record(self) -> dict[str, Any]:
        return {**self.extra, "altnames": list(self.altnames)}


@dataclass(frozen=True)
class ApprovalDecision:
    """An approved certificate action."""

    domains: tuple[str, ...]
    options: Mapping[str, Any]
    renewal: bool
    certs: ExistingCertificate | None = None

    def to_payload(self) -> dict[str, Any]:
        """The ``{options, certs}`` answer expected by the automation."""
        return {
            "options": dict(self.options),
            "certs": self.certs.to_record() if self.certs is not None else None,
        }


def approve(
    request: ApprovalRequest,
    existing: ExistingCertificate | None,
    domains: frozenset[str],
    *,
    contact_email: str,
) -> ApprovalDecision:
    """Decide whether a certificate action may proceed.

    Raises
    ------
    DomainNotApprovedError
        On a fresh issuance for a domain not in *domains*.

    """
    if existing is not None:
        approved = tuple(existing.altnames)
        return ApprovalDecision(
            domains=approved,
            options={**request.options, "domains": list(approved)},
            renewal=True,
            certs=existing,
        )

    domain = normalize_domain(request.domain)
    if domain not in domains:
        raise DomainNotApprovedError(domain)

    return ApprovalDecision(
        domains=(domain,),
        options={
            **request.options,
            "email": contact_email,
            "agreeTos": True,
            "domains": [domain],
        },
        renewal=False,
    )


class DomainApprovalGate:
    """Approval gate bound to one registry snapshot.

    Holds no mutable state, so it may be called from several threads at
    once.

    Parameters
    ----------
    registry:
        The startup registry whose domain set is the allowlist.
    contact_email:
        Maintainer address attached to fresh issuances.

    """

    def __init__(self, registry: DomainRegistry, contact_email: str) -> None:
        self._domains = registry.domains
        self._contact_email = contact_email

    @property
    def contact_email(self) -> str:
        return self._contact_email

    def approve(
        self,
        request: ApprovalRequest,
        existing: ExistingCertificate | None = None,
    ) -> ApprovalDecision:
        """Approve *request* or raise :class:`DomainNotApprovedError`."""
        try:
            decision = approve(
                request,
                existing,
                self._domains,
                contact_email=self._contact_email,
            )
        except DomainNotApprovedError as exc:
            log.warning("Domain not approved: %s", exc.domain)
            audit_log.warning(
                "certificate request rejected",
                extra={"event": "approval.rejected", "domain": exc.domain},
            )
            raise

        kind = "renewal" if decision.renewal else "issuance"
        log.info(
            "Approved certificate %s for %s",
            kind,
            ", ".join(decision.domains),
        )
        audit_log.info(
            "certificate request approved",
            extra={
                "event": f"approval.{kind}",
                "domain": request.domain,
                "approved_domains": list(decision.domains),
            },
        )
        return decision

    def __call__(
        self,
        options: Mapping[str, Any],
        certs: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Callback form: ``gate(options, certs) -> {"options", "certs"}``.

        Raises :class:`DomainNotApprovedError` on rejection and
        :class:`ValueError` on malformed input.
        """
        request = ApprovalRequest.from_options(options)
        existing = ExistingCertificate.from_record(certs) if certs else None
        return self.approve(request, existing).to_payload()
