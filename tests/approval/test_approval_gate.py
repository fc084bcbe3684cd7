"""Tests for roster.approval.gate."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from roster.approval.gate import (
    ApprovalRequest,
    DomainApprovalGate,
    ExistingCertificate,
    approve,
)
from roster.core.errors import DomainNotApprovedError
from roster.sites.registry import DomainRegistry

CONTACT = "ops@roster.test"


def _handler(environ, start_response):
    start_response("200 OK", [])
    return [b""]


@pytest.fixture()
def registry() -> DomainRegistry:
    return DomainRegistry.from_pairs([("y.com", _handler), ("a.org", _handler)])


@pytest.fixture()
def gate(registry) -> DomainApprovalGate:
    return DomainApprovalGate(registry, contact_email=CONTACT)


# ---------------------------------------------------------------------------
# Pure decision function
# ---------------------------------------------------------------------------


class TestApproveRenewal:
    def test_trusts_existing_altnames(self, registry):
        existing = ExistingCertificate(altnames=("x.com", "www.x.com"))
        decision = approve(
            ApprovalRequest(domain="x.com"),
            existing,
            registry.domains,
            contact_email=CONTACT,
        )

        assert decision.renewal is True
        assert decision.domains == ("x.com", "www.x.com")
        assert decision.options["domains"] == ["x.com", "www.x.com"]

    def test_does_not_add_contact_metadata(self, registry):
        decision = approve(
            ApprovalRequest(domain="x.com", options={"domain": "x.com"}),
            ExistingCertificate(altnames=("x.com",)),
            registry.domains,
            contact_email=CONTACT,
        )
        assert "email" not in decision.options
        assert "agreeTos" not in decision.options


class TestApproveFresh:
    def test_allowed_domain(self, registry):
        decision = approve(
            ApprovalRequest(domain="y.com"),
            None,
            registry.domains,
            contact_email=CONTACT,
        )

        assert decision.renewal is False
        assert decision.domains == ("y.com",)
        assert decision.options["domains"] == ["y.com"]
        assert decision.options["email"] == CONTACT
        assert decision.options["agreeTos"] is True

    def test_www_form_is_allowed(self, registry):
        decision = approve(
            ApprovalRequest(domain="www.y.com"),
            None,
            registry.domains,
            contact_email=CONTACT,
        )
        assert decision.domains == ("www.y.com",)

    def test_denied_domain(self, registry):
        with pytest.raises(DomainNotApprovedError) as excinfo:
            approve(
                ApprovalRequest(domain="z.com"),
                None,
                registry.domains,
                contact_email=CONTACT,
            )
        assert excinfo.value.domain == "z.com"

    def test_subdomain_of_served_domain_denied(self, registry):
        with pytest.raises(DomainNotApprovedError):
            approve(
                ApprovalRequest(domain="evil.y.com"),
                None,
                registry.domains,
                contact_email=CONTACT,
            )

    def test_requested_domain_is_normalised(self, registry):
        decision = approve(
            ApprovalRequest(domain="Y.COM."),
            None,
            registry.domains,
            contact_email=CONTACT,
        )
        assert decision.domains == ("y.com",)

    def test_requested_options_are_kept(self, registry):
        decision = approve(
            ApprovalRequest(domain="y.com", options={"domain": "y.com", "wildcard": False}),
            None,
            registry.domains,
            contact_email=CONTACT,
        )
        assert decision.options["wildcard"] is False


# ---------------------------------------------------------------------------
# Gate object / callback shape
# ---------------------------------------------------------------------------


class TestDomainApprovalGate:
    def test_callback_fresh_issuance(self, gate):
        payload = gate({"domain": "y.com"}, None)

        assert payload["certs"] is None
        assert payload["options"] == {
            "domain": "y.com",
            "email": CONTACT,
            "agreeTos": True,
            "domains": ["y.com"],
        }

    def test_callback_renewal_ignores_registry(self, gate):
        certs = {"altnames": ["x.com", "www.x.com"], "expiresAt": 123}
        payload = gate({"domain": "x.com"}, certs)

        assert payload["options"]["domains"] == ["x.com", "www.x.com"]
        assert payload["certs"] == {"expiresAt": 123, "altnames": ["x.com", "www.x.com"]}

    def test_callback_rejection_raises(self, gate):
        with pytest.raises(DomainNotApprovedError, match="z.com"):
            gate({"domain": "z.com"}, None)

    def test_rejection_is_logged(self, gate, caplog):
        with caplog.at_level(logging.WARNING, logger="roster.approval.gate"):
            with pytest.raises(DomainNotApprovedError):
                gate.approve(ApprovalRequest(domain="z.com"))

        assert "Domain not approved: z.com" in caplog.text

    def test_decisions_are_audited(self, gate, caplog):
        with caplog.at_level(logging.INFO, logger="roster.audit"):
            gate.approve(ApprovalRequest(domain="y.com"))
            with pytest.raises(DomainNotApprovedError):
                gate.approve(ApprovalRequest(domain="z.com"))

        events = [getattr(r, "event", None) for r in caplog.records if r.name == "roster.audit"]
        assert events == ["approval.issuance", "approval.rejected"]

    def test_missing_domain_is_malformed(self, gate):
        with pytest.raises(ValueError, match="domain"):
            gate({}, None)

    def test_existing_record_without_altnames_is_malformed(self, gate):
        with pytest.raises(ValueError, match="altnames"):
            gate({"domain": "x.com"}, {"subject": "x.com"})

    def test_empty_certs_mapping_is_fresh_issuance(self, gate):
        with pytest.raises(DomainNotApprovedError):
            gate({"domain": "x.com"}, {})

    def test_contact_email(self, gate):
        assert gate.contact_email == CONTACT

    def test_concurrent_calls(self, gate):
        domains = ["y.com", "z.com", "a.org", "www.a.org", "q.net"] * 20

        def _ask(domain):
            try:
                return gate({"domain": domain}, None)["options"]["domains"]
            except DomainNotApprovedError:
                return None

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(_ask, domains))

        expected = [["y.com"], None, ["a.org"], ["www.a.org"], None] * 20
        assert results == expected
