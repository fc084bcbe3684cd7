"""Configuration subsystem for Roster.

Public API::

    from roster.config import get_config, RosterConfig

    # At startup (CLI / WSGI entry point only):
    RosterConfig(config_file="config.yaml")

    # Everywhere else:
    cfg  = get_config()
    path = cfg.settings.sites.path           # typed access
    mode = cfg.get("certificates.staging")   # dynamic dot-path
"""

from roster.config.roster_config import (
    ConfigValidationError,
    RosterConfig,
    get_config,
)
from roster.config.settings import (
    AuditLogSettings,
    CertificateSettings,
    LoggingSettings,
    ProxySettings,
    RosterSettings,
    ServerSettings,
    SitesSettings,
)

__all__ = [
    "AuditLogSettings",
    "CertificateSettings",
    "ConfigValidationError",
    "LoggingSettings",
    "ProxySettings",
    "RosterConfig",
    "RosterSettings",
    "ServerSettings",
    "SitesSettings",
    "get_config",
]
