"""Logging subsystem for Roster.

Public API::

    from roster.logging import configure_logging

    configure_logging(settings.logging)
"""

from roster.logging.setup import configure_logging

__all__ = ["configure_logging"]
