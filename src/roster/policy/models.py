"""Certificate-policy document entities.

The document is consumed by a greenlock-style certificate manager, so
field names on disk are camelCase::

    {
      "defaults": {
        "store": {"module": "greenlock-store-fs", "basePath": "..."},
        "challenges": {"http-01": {"module": "acme-http-01-standalone"}},
        "renewOffset": "-45d",
        "renewStagger": "3d",
        "accountKeyType": "EC-P256",
        "serverKeyType": "RSA-2048",
        "subscriberEmail": "ops@example.com"
      },
      "sites": [
        {"subject": "example.com",
         "altnames": ["example.com", "www.example.com"],
         "renewAt": 1735689600000}
      ]
    }

``to_dict`` emits keys in the order above, which is what makes the
serialised form deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

STORE_MODULE = "greenlock-store-fs"
HTTP01_MODULE = "acme-http-01-standalone"
RENEW_OFFSET = "-45d"
RENEW_STAGGER = "3d"
ACCOUNT_KEY_TYPE = "EC-P256"
SERVER_KEY_TYPE = "RSA-2048"

# Shape check applied to documents read back from disk.  Only the parts
# the reconciler relies on are constrained; unknown keys are tolerated.
DOCUMENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "defaults": {"type": "object"},
        "sites": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["subject"],
                "properties": {
                    "subject": {"type": "string", "minLength": 1},
                    "altnames": {
                        "type": "array",
                        "items": {"type": "string"},
                    },
                    "renewAt": {"type": ["number", "string", "null"]},
                },
            },
        },
    },
}


@dataclass(frozen=True)
class PolicyDefaults:
    """Issuance defaults shared by every site."""

    base_path: str
    subscriber_email: str
    store_module: str = STORE_MODULE
    http01_module: str = HTTP01_MODULE
    renew_offset: str = RENEW_OFFSET
    renew_stagger: str = RENEW_STAGGER
    account_key_type: str = ACCOUNT_KEY_TYPE
    server_key_type: str = SERVER_KEY_TYPE

    def to_dict(self) -> dict[str, Any]:
        return {
            "store": {
                "module": self.store_module,
                "basePath": self.base_path,
            },
            "challenges": {
                "http-01": {"module": self.http01_module},
            },
            "renewOffset": self.renew_offset,
            "renewStagger": self.renew_stagger,
            "accountKeyType": self.account_key_type,
            "serverKeyType": self.server_key_type,
            "subscriberEmail": self.subscriber_email,
        }


@dataclass(frozen=True)
class SiteCertEntry:
    """One certificate the automation should keep issued.

    ``renew_at`` is whatever the certificate manager last recorded
    (epoch milliseconds for greenlock); Roster never interprets it.
    """

    subject: str
    altnames: tuple[str, ...]
    renew_at: int | float | str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "subject": self.subject,
            "altnames": list(self.altnames),
        }
        if self.renew_at is not None:
            data["renewAt"] = self.renew_at
        return data


@dataclass(frozen=True)
class CertificatePolicyDocument:
    defaults: PolicyDefaults
    sites: tuple[SiteCertEntry, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "defaults": self.defaults.to_dict(),
            "sites": [site.to_dict() for site in self.sites],
        }

    def find(self, subject: str) -> SiteCertEntry | None:
        """Return the entry whose subject is *subject*, if any."""
        for site in self.sites:
            if site.subject == subject:
                return site
        return None
