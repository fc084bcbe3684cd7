"""Middleware stack for Roster.

WSGI-level:
    :class:`HostDispatchMiddleware` applies the router's decision:
    redirect ``www.`` hosts, hand requests to site applications, or fall
    through to the Flask fallback app.

    :class:`TrustedProxyMiddleware` resolves the real client IP, scheme
    and host from configurable forwarded headers, for connections coming
    from an allowlisted proxy.

Flask-level (registered via :func:`register_request_hooks`):
    * Request ID generation / passthrough (``X-Request-ID``)
    * Request timing
    * Structured access logging
"""

from __future__ import annotations

import ipaddress
import logging
import time
from typing import TYPE_CHECKING
from urllib.parse import urlsplit
from uuid import uuid4

from flask import Flask, g, request
from werkzeug.urls import iri_to_uri
from werkzeug.utils import redirect
from werkzeug.wrappers import Request

from roster.app.router import Dispatch, Redirect

if TYPE_CHECKING:
    from collections.abc import Sequence

    from roster.app.router import HostRouter

log = logging.getLogger(__name__)
access_log = logging.getLogger("roster.access")


# ═══════════════════════════════════════════════════════════════════════════
# WSGI middleware
# ═══════════════════════════════════════════════════════════════════════════


def original_url(environ: dict) -> str:
    """Mount path, path and query string of the request, as sent.

    Percent-escapes are kept: the raw request URI is used when the server
    provides one (``RAW_URI`` from gunicorn, ``REQUEST_URI`` from most
    others), otherwise the decoded path is re-quoted.
    """
    raw = environ.get("RAW_URI") or environ.get("REQUEST_URI")
    if raw:
        target = raw.partition("?")[0]
        if not target.startswith("/"):
            # absolute-form request target
            target = urlsplit(target).path or "/"
    else:
        req = Request(environ, shallow=True)
        target = iri_to_uri(req.root_path + req.path)

    query = environ.get("QUERY_STRING", "")
    if query:
        target += "?" + query
    return target


class HostDispatchMiddleware:
    """WSGI middleware that routes by ``Host`` header.

    Parameters
    ----------
    fallback:
        WSGI app for hosts the router does not know (usually the Flask
        app's own ``wsgi_app``).
    router:
        The :class:`HostRouter` built at startup.

    """

    def __init__(self, fallback, router: HostRouter) -> None:
        self.fallback = fallback
        self.router = router

    def __call__(self, environ, start_response):
        host = environ.get("HTTP_HOST", "")
        outcome = self.router.route(host, original_url(environ))

        if isinstance(outcome, Redirect):
            access_log.info(
                "%s %s%s %s -> %s",
                environ.get("REQUEST_METHOD", "-"),
                host,
                environ.get("PATH_INFO", ""),
                outcome.status,
                outcome.location,
                extra={"status": outcome.status, "location": outcome.location},
            )
            response = redirect(outcome.location, code=outcome.status)
            return response(environ, start_response)

        if isinstance(outcome, Dispatch):
            log.debug("Dispatching %s to site handler", outcome.host)
            return outcome.handler(environ, start_response)

        return self.fallback(environ, start_response)


class TrustedProxyMiddleware:
    """WSGI middleware that processes forwarded headers from trusted proxies.

    If the connecting address (``REMOTE_ADDR``) is in the trusted set,
    the middleware overwrites environ values with the content of the
    configured forwarded headers.  Untrusted connections pass through
    unchanged.

    Handles:
    * ``X-Forwarded-For``   (or custom) → ``REMOTE_ADDR``
    * ``X-Forwarded-Proto`` (or custom) → ``wsgi.url_scheme``
    * ``X-Forwarded-Host``  (or custom) → ``HTTP_HOST``
    """

    def __init__(
        self,
        app,
        *,
        trusted_proxies: Sequence[str] = (),
        for_header: str = "X-Forwarded-For",
        proto_header: str = "X-Forwarded-Proto",
        host_header: str = "X-Forwarded-Host",
    ) -> None:
        self.app = app
        self._networks = self._parse_networks(trusted_proxies)
        self._for_key = self._wsgi_header_key(for_header)
        self._proto_key = self._wsgi_header_key(proto_header)
        self._host_key = self._wsgi_header_key(host_header)

    @staticmethod
    def _wsgi_header_key(header: str) -> str:
        """``X-Forwarded-For`` → ``HTTP_X_FORWARDED_FOR``."""
        return "HTTP_" + header.upper().replace("-", "_")

    @staticmethod
    def _parse_networks(
        proxies: Sequence[str],
    ) -> list[ipaddress.IPv4Network | ipaddress.IPv6Network]:
        networks = []
        for entry in proxies:
            try:
                networks.append(ipaddress.ip_network(entry, strict=False))
            except ValueError:
                log.warning("Ignoring unparseable trusted proxy: %s", entry)
        return networks

    def _is_trusted(self, addr: str) -> bool:
        if not self._networks:
            # Empty allowlist with proxy enabled = trust everything
            # (config already warns about this)
            return True
        try:
            ip = ipaddress.ip_address(addr)
        except ValueError:
            return False
        return any(ip in net for net in self._networks)

    def _extract_client_ip(self, forwarded_for: str) -> str:
        """Walk ``X-Forwarded-For`` right-to-left, return first untrusted."""
        parts = [p.strip() for p in forwarded_for.split(",")]
        for addr in reversed(parts):
            if not self._is_trusted(addr):
                return addr
        return parts[0]

    def __call__(self, environ, start_response):
        remote = environ.get("REMOTE_ADDR", "")

        if self._is_trusted(remote):
            forwarded_for = environ.get(self._for_key, "")
            if forwarded_for:
                environ["REMOTE_ADDR"] = self._extract_client_ip(forwarded_for)

            proto = environ.get(self._proto_key, "")
            if proto:
                environ["wsgi.url_scheme"] = proto.split(",")[0].strip().lower()

            # The nearest proxy appends last; the client's host is first
            forwarded_host = environ.get(self._host_key, "")
            if forwarded_host:
                environ["HTTP_HOST"] = forwarded_host.split(",")[0].strip()

        return self.app(environ, start_response)


# ═══════════════════════════════════════════════════════════════════════════
# Flask request lifecycle hooks
# ═══════════════════════════════════════════════════════════════════════════


def register_request_hooks(app: Flask) -> None:
    """Register before/after request hooks for ID tracking, timing, and
    access logging on the fallback app.
    """

    @app.before_request
    def _before_request() -> None:
        g.request_id = request.headers.get("X-Request-ID") or uuid4().hex
        g.start_time = time.monotonic()

    @app.after_request
    def _after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers["X-Request-ID"] = request_id

        status = response.status_code
        duration_ms = _elapsed_ms()
        level = (
            logging.WARNING
            if 400 <= status < 500
            else logging.ERROR
            if status >= 500
            else logging.INFO
        )
        access_log.log(
            level,
            "%s %s %s %.1fms",
            request.method,
            request.path,
            status,
            duration_ms,
            extra={
                "status": status,
                "duration_ms": round(duration_ms, 1),
                "content_length": response.content_length,
            },
        )

        return response


def _elapsed_ms() -> float:
    start = getattr(g, "start_time", None)
    if start is None:
        return 0.0
    return (time.monotonic() - start) * 1000
