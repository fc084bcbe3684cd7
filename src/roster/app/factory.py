"""Flask application factory for Roster.

The Flask app is the *fallback*: it serves health probes and renders a
404 problem for hosts no site answers to.  Host routing wraps its
``wsgi_app`` so registered hosts never reach Flask.

Usage::

    from roster.app import create_app
    from roster.app.context import Container
    from roster.config import get_config

    cfg = get_config()
    app = create_app(config=cfg, container=Container.bootstrap(cfg.settings))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flask import Flask, jsonify

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

    from roster.app.context import Container
    from roster.config.roster_config import RosterConfig

log = logging.getLogger(__name__)


def create_app(
    config: RosterConfig | None = None,
    container: Container | None = None,
) -> Flask:
    """Create and configure the Roster WSGI application.

    Parameters
    ----------
    config:
        Loaded :class:`RosterConfig`.  Falls back to :func:`get_config`
        when ``None``.
    container:
        Startup container.  When ``None`` the startup sequence
        (discovery + policy reconciliation) runs here.

    Returns
    -------
    Flask
        Fully configured WSGI application.

    """
    if config is None:
        from roster.config import get_config  # noqa: PLC0415

        config = get_config()

    settings = config.settings

    if container is None:
        from roster.app.context import Container  # noqa: PLC0415

        container = Container.bootstrap(settings)

    app = Flask("roster")
    app.config["ROSTER_SETTINGS"] = settings
    app.config["ROSTER_CONFIG"] = config
    app.extensions["container"] = container

    # -- Error handlers (RFC 7807) ------------------------------------------
    from roster.app.errors import register_error_handlers

    register_error_handlers(app)

    # -- Request lifecycle hooks --------------------------------------------
    from roster.app.middleware import register_request_hooks

    register_request_hooks(app)

    # -- Infrastructure endpoints -------------------------------------------
    _register_health(app)

    # -- Host routing (www redirect + per-site dispatch) --------------------
    from roster.app.middleware import HostDispatchMiddleware

    app.wsgi_app = HostDispatchMiddleware(  # type: ignore[method-assign]
        app.wsgi_app,
        container.router,
    )

    # -- WSGI middleware (outermost layer) ----------------------------------
    if settings.proxy.enabled:
        from roster.app.middleware import TrustedProxyMiddleware  # noqa: PLC0415

        app.wsgi_app = TrustedProxyMiddleware(  # type: ignore[method-assign]
            app.wsgi_app,
            trusted_proxies=settings.proxy.trusted_proxies,
            for_header=settings.proxy.forwarded_for_header,
            proto_header=settings.proxy.forwarded_proto_header,
            host_header=settings.proxy.forwarded_host_header,
        )
        log.info(
            "Proxy middleware enabled (trusted: %s)",
            list(settings.proxy.trusted_proxies) or "all",
        )

    log.info("Flask application created")
    return app


# ---------------------------------------------------------------------------
# Infrastructure endpoints
# ---------------------------------------------------------------------------


def _register_health(app: Flask) -> None:
    """Register ``/livez``, ``/healthz``, and ``/readyz`` probes.

    Only reachable on hosts that are not routed to a site.
    """
    from roster import __version__

    @app.route("/livez")
    def livez() -> ResponseReturnValue:
        """Return minimal liveness probe."""
        return jsonify({"alive": True, "version": __version__}), 200

    @app.route("/healthz")
    def healthz() -> ResponseReturnValue:
        """Return the startup state of sites and certificate policy."""
        container = app.extensions["container"]
        settings = container.settings
        result: dict = {
            "status": "ok",
            "version": __version__,
            "sites": list(container.registry.root_domains),
            "certificates": {
                "staging": settings.certificates.staging,
                "directory_url": settings.certificates.directory_url,
                "policy_path": str(settings.certificates.policy_path),
            },
        }
        if container.policy is not None:
            result["certificates"]["policy_sites"] = len(container.policy.document.sites)
        if not len(container.registry):
            result["status"] = "degraded"

        code = 200 if result["status"] == "ok" else 503
        return jsonify(result), code

    @app.route("/readyz")
    def readyz() -> ResponseReturnValue:
        """Return readiness probe: ready once at least one site is served."""
        container = app.extensions["container"]
        if not len(container.registry):
            return jsonify({"ready": False, "reason": "No sites discovered"}), 503
        return jsonify({"ready": True}), 200
