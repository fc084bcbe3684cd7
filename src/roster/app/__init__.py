"""Flask application package for Roster.

Public API::

    from roster.app import create_app
"""

from roster.app.factory import create_app

__all__ = ["create_app"]
