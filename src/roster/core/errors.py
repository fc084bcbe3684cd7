"""Error taxonomy for Roster.

Fatal startup conditions (:class:`DiscoveryError`,
:class:`PolicyCorruptError`, :class:`PersistenceError`) propagate to the
entry point, which exits non-zero.  :class:`SiteLoadError` is caught by
discovery and logged.  :class:`DomainNotApprovedError` is handed back to
the certificate automation as a rejection.

An unmatched host is not an error: the router returns a ``NotFound``
outcome.
"""

from __future__ import annotations

from pathlib import Path


class RosterError(Exception):
    """Base class for all Roster errors."""


class DiscoveryError(RosterError):
    """The site source directory cannot be read."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot discover sites in {self.path}: {reason}")


class SiteLoadError(RosterError):
    """A single site directory has no loadable request handler."""

    def __init__(self, domain: str, reason: str) -> None:
        self.domain = domain
        self.reason = reason
        super().__init__(f"Cannot load site {domain!r}: {reason}")


class PolicyCorruptError(RosterError):
    """The persisted certificate-policy document cannot be parsed.

    Reconciliation is aborted instead of overwriting the file so that
    renewal timestamps recorded by the certificate automation are not
    lost.
    """

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Certificate policy {self.path} is corrupt: {reason}")


class PersistenceError(RosterError):
    """The certificate-policy document could not be written."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot write certificate policy {self.path}: {reason}")


class DomainNotApprovedError(RosterError):
    """A fresh certificate was requested for a domain Roster does not serve."""

    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__(f"Domain not approved: {domain}")
