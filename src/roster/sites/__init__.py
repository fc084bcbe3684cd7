"""Domain registry: which sites Roster serves and how.

Public API::

    from roster.sites import DomainRegistry, discover

    registry = discover("/srv/www")
    handler = registry.get_handler("example.com")
"""

from roster.sites.base import Site
from roster.sites.registry import DomainRegistry, discover

__all__ = ["DomainRegistry", "Site", "discover"]
