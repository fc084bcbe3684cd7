"""WSGI entry point for external servers (gunicorn, uWSGI, etc.).

The config file path is read from the ``ROSTER_CONFIG`` environment
variable.  Importing this module runs the startup sequence: site
discovery and certificate-policy reconciliation.

Example::

    export ROSTER_CONFIG=/etc/roster/config.yaml
    gunicorn "roster.server.wsgi:app"
"""

from __future__ import annotations

import os
import sys

_config_path = os.environ.get("ROSTER_CONFIG")
if _config_path is None:
    sys.stderr.write("ROSTER_CONFIG is not set\n")
    sys.exit(1)

# Bootstrap the singleton before anything else imports it.
from roster.config import RosterConfig  # noqa: E402

_config = RosterConfig(config_file=_config_path)

from roster.logging import configure_logging  # noqa: E402

configure_logging(_config.settings.logging)

from roster.app import create_app  # noqa: E402

app = create_app(config=_config)
