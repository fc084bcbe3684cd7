"""Serve subcommand — start the Roster server."""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)


def run_serve(config, args) -> None:
    """Discover sites, reconcile the certificate policy, start serving."""
    from roster.app import create_app
    from roster.app.context import Container

    container = Container.bootstrap(config.settings)
    app = create_app(config=config, container=container)

    if args.dev:
        log.info("Starting development server (not for production)")
        server = config.settings.server
        ssl_ctx = (server.certfile, server.keyfile) if server.tls_enabled else None
        app.run(
            host=server.bind,
            port=server.port,
            debug=True,
            use_reloader=False,
            ssl_context=ssl_ctx,
        )
    else:
        from roster.server.gunicorn_app import run_gunicorn

        run_gunicorn(app, config.settings.server)
