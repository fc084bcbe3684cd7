"""Host-based routing.

Decides, from the ``Host`` header and request path alone, what happens
to a request:

* ``www.`` hosts are permanently redirected to the root host over
  HTTPS;
* a host registered in the :class:`DomainRegistry` is dispatched to its
  handler;
* anything else is :class:`NotFound` and left to the fallback app.

Matching is exact and case-sensitive; only a trailing ``:port`` is
ignored for the lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from roster.core.domains import WWW_PREFIX, is_www

if TYPE_CHECKING:
    from roster.sites.base import WSGIApplication
    from roster.sites.registry import DomainRegistry


@dataclass(frozen=True)
class Redirect:
    status: int
    location: str


@dataclass(frozen=True)
class Dispatch:
    handler: WSGIApplication
    host: str


@dataclass(frozen=True)
class NotFound:
    host: str


RoutingOutcome = Union[Redirect, Dispatch, NotFound]


def hostname(host: str) -> str:
    """Strip a ``:port`` suffix, leaving IPv6 literals intact."""
    if host.startswith("["):
        end = host.find("]")
        return host[: end + 1] if end != -1 else host
    name, sep, port = host.rpartition(":")
    if sep and port.isdigit():
        return name
    return host


def route(host: str, path: str, registry: DomainRegistry) -> RoutingOutcome:
    """Route one request.

    Parameters
    ----------
    host:
        The ``Host`` header exactly as received.
    path:
        The original request target (path plus query string).
    registry:
        Dispatch table.

    """
    if is_www(host):
        return Redirect(301, "https://" + host[len(WWW_PREFIX):] + path)

    name = hostname(host)
    handler = registry.get_handler(name) if name else None
    if handler is None:
        return NotFound(host)
    return Dispatch(handler, name)


class HostRouter:
    """:func:`route` bound to one registry snapshot."""

    def __init__(self, registry: DomainRegistry) -> None:
        self.registry = registry

    def route(self, host: str, path: str) -> RoutingOutcome:
        return route(host, path, self.registry)
