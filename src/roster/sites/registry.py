"""Domain registry — the set of served domains and their handlers.

The registry is built once at startup and never mutated afterwards.  It
is the allowlist consulted by the approval gate, the input of the
certificate-policy reconciler, and the dispatch table of the router.

Two ways to build one::

    # Declarative: the caller supplies (domain, handler) pairs
    registry = DomainRegistry.from_pairs([("example.com", app)])

    # Directory scan: one subdirectory per domain, each with app.py
    registry = discover("/srv/www")
"""

from __future__ import annotations

import importlib.util
import logging
import re
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from roster.core.domains import is_www, normalize_domain, strip_www
from roster.core.errors import DiscoveryError, SiteLoadError
from roster.sites.base import Site, WSGIApplication

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

log = logging.getLogger(__name__)

_MODULE_NAME_RE = re.compile(r"[^a-zA-Z0-9_]")


class DomainRegistry:
    """Immutable snapshot of served sites.

    Every site contributes its root name and its ``www.`` name, both
    mapped to the same handler.

    Parameters
    ----------
    sites:
        The sites to register.  Domains must already be normalised.

    Raises
    ------
    ValueError
        If two sites claim the same host name.

    """

    def __init__(self, sites: Iterable[Site] = ()) -> None:
        handlers: dict[str, WSGIApplication] = {}
        ordered: list[Site] = []
        for site in sites:
            for name in site.names:
                if name in handlers:
                    msg = f"Domain {name!r} is registered more than once"
                    raise ValueError(msg)
                handlers[name] = site.handler
            ordered.append(site)

        self._sites: tuple[Site, ...] = tuple(ordered)
        self._handlers: Mapping[str, WSGIApplication] = MappingProxyType(handlers)
        self._domains: frozenset[str] = frozenset(handlers)

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[str, WSGIApplication]],
    ) -> DomainRegistry:
        """Build a registry from ``(domain, handler)`` pairs."""
        return cls(
            Site(domain=strip_www(normalize_domain(domain)), handler=handler)
            for domain, handler in pairs
        )

    # -- queries ------------------------------------------------------------

    @property
    def sites(self) -> tuple[Site, ...]:
        return self._sites

    @property
    def domains(self) -> frozenset[str]:
        """Every registered host name (root and ``www.`` forms)."""
        return self._domains

    @property
    def root_domains(self) -> tuple[str, ...]:
        """Registered root domains, sorted."""
        return tuple(sorted(site.domain for site in self._sites))

    @property
    def handlers(self) -> Mapping[str, WSGIApplication]:
        """Read-only host name → handler mapping."""
        return self._handlers

    def get_handler(self, host: str) -> WSGIApplication | None:
        """Return the handler for *host* (exact match) or ``None``."""
        return self._handlers.get(host)

    def __contains__(self, host: object) -> bool:
        return host in self._domains

    def __iter__(self) -> Iterator[Site]:
        return iter(self._sites)

    def __len__(self) -> int:
        return len(self._sites)

    def __repr__(self) -> str:
        return f"<DomainRegistry sites={list(self.root_domains)}>"


# ---------------------------------------------------------------------------
# Directory discovery
# ---------------------------------------------------------------------------


def discover(
    site_source: str | Path,
    *,
    handler_module: str = "app.py",
    handler_attribute: str = "app",
) -> DomainRegistry:
    """Scan *site_source* and build a :class:`DomainRegistry`.

    Each non-hidden subdirectory is a domain.  Its *handler_module* file is
    imported and *handler_attribute* is taken from it as the site's WSGI
    application.  Sites that cannot be loaded are logged and skipped.

    Raises
    ------
    DiscoveryError
        If *site_source* does not exist, is not a directory or cannot be
        listed.

    """
    root = Path(site_source)
    if not root.is_dir():
        raise DiscoveryError(root, "not a directory")
    try:
        entries = sorted(root.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise DiscoveryError(root, exc.strerror or str(exc)) from exc

    sites: list[Site] = []
    seen: set[str] = set()
    for entry in entries:
        if entry.name.startswith(".") or not entry.is_dir():
            continue
        try:
            site = _load_site(entry, handler_module, handler_attribute)
            if site.domain in seen:
                raise SiteLoadError(site.domain, "duplicate domain")
        except SiteLoadError as exc:
            log.warning("Skipping site %s: %s", entry.name, exc.reason)
            continue
        seen.add(site.domain)
        sites.append(site)
        log.info("Loaded site: %s", site.domain)

    if not sites:
        log.warning("No sites discovered in %s", root)
    return DomainRegistry(sites)


def _load_site(directory: Path, handler_module: str, handler_attribute: str) -> Site:
    """Import the handler module of one site directory."""
    domain = normalize_domain(directory.name)
    if is_www(domain):
        log.warning(
            "Site directory %s uses the www. form; registering as %s",
            directory.name,
            strip_www(domain),
        )
        domain = strip_www(domain)
    if not domain:
        raise SiteLoadError(directory.name, "empty domain name")

    module_path = directory / handler_module
    if not module_path.is_file():
        raise SiteLoadError(domain, f"{handler_module} not found in {directory}")

    module_name = "roster_site_" + _MODULE_NAME_RE.sub("_", domain)
    spec = importlib.util.spec_from_file_location(module_name, module_path)
    if spec is None or spec.loader is None:
        raise SiteLoadError(domain, f"cannot import {module_path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        log.debug("Import of %s failed", module_path, exc_info=True)
        raise SiteLoadError(domain, f"import failed: {exc}") from exc

    handler = getattr(module, handler_attribute, None)
    if handler is None:
        raise SiteLoadError(
            domain,
            f"{handler_module} does not define '{handler_attribute}'",
        )
    if not callable(handler):
        raise SiteLoadError(domain, f"'{handler_attribute}' is not callable")

    return Site(domain=domain, handler=handler)
