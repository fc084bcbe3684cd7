"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders are
what the application actually reads.

Access pattern::

    from roster.config import get_config

    sites = get_config().settings.sites
    print(sites.path, sites.handler_module)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

_LETSENCRYPT_PRODUCTION = "https://acme-v02.api.letsencrypt.org/directory"
_LETSENCRYPT_STAGING = "https://acme-staging-v02.api.letsencrypt.org/directory"

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ServerSettings:
    """HTTP server configuration (bind address, workers, timeouts, TLS)."""

    bind: str
    port: int
    workers: int
    worker_class: str
    timeout: int
    graceful_timeout: int
    keepalive: int
    max_requests: int
    max_requests_jitter: int
    certfile: str | None
    keyfile: str | None

    @property
    def tls_enabled(self) -> bool:
        return bool(self.certfile and self.keyfile)


def _build_server(data: dict | None) -> ServerSettings:
    d = data or {}
    return ServerSettings(
        bind=d.get("bind", "0.0.0.0"),  # noqa: S104
        port=d.get("port", 8443),
        workers=d.get("workers", 4),
        worker_class=d.get("worker_class", "sync"),
        timeout=d.get("timeout", 30),
        graceful_timeout=d.get("graceful_timeout", 30),
        keepalive=d.get("keepalive", 2),
        max_requests=d.get("max_requests", 0),
        max_requests_jitter=d.get("max_requests_jitter", 0),
        certfile=d.get("certfile"),
        keyfile=d.get("keyfile"),
    )


# ---------------------------------------------------------------------------
# Proxy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProxySettings:
    """Reverse proxy configuration (trusted headers, forwarded-for)."""

    enabled: bool
    trusted_proxies: tuple[str, ...]
    forwarded_for_header: str
    forwarded_proto_header: str
    forwarded_host_header: str


def _build_proxy(data: dict | None) -> ProxySettings:
    d = data or {}
    return ProxySettings(
        enabled=d.get("enabled", False),
        trusted_proxies=tuple(d.get("trusted_proxies", [])),
        forwarded_for_header=d.get("forwarded_for_header", "X-Forwarded-For"),
        forwarded_proto_header=d.get("forwarded_proto_header", "X-Forwarded-Proto"),
        forwarded_host_header=d.get("forwarded_host_header", "X-Forwarded-Host"),
    )


# ---------------------------------------------------------------------------
# Sites
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SitesSettings:
    """Where site handlers live and how to load them."""

    path: str
    handler_module: str
    handler_attribute: str


def _build_sites(data: dict | None) -> SitesSettings:
    d = data or {}
    return SitesSettings(
        path=d.get("path", "www"),
        handler_module=d.get("handler_module", "app.py"),
        handler_attribute=d.get("handler_attribute", "app"),
    )


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CertificateSettings:
    """Certificate-policy document location and ACME environment."""

    config_dir: str
    config_file: str
    staging: bool
    lock: bool

    @property
    def policy_path(self) -> Path:
        return Path(self.config_dir) / self.config_file

    @property
    def directory_url(self) -> str:
        """ACME directory the certificate automation should talk to."""
        return _LETSENCRYPT_STAGING if self.staging else _LETSENCRYPT_PRODUCTION


def _build_certificates(data: dict | None) -> CertificateSettings:
    d = data or {}
    return CertificateSettings(
        config_dir=d.get("config_dir", "greenlock.d"),
        config_file=d.get("config_file", "config.json"),
        staging=d.get("staging", False),
        lock=d.get("lock", True),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditLogSettings:
    """Audit log of certificate approval decisions."""

    enabled: bool
    file: str | None
    max_file_size_bytes: int
    backup_count: int


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format, audit)."""

    level: str
    format: str
    audit: AuditLogSettings


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    a = d.get("audit") or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
        audit=AuditLogSettings(
            enabled=a.get("enabled", True),
            file=a.get("file"),
            max_file_size_bytes=a.get("max_file_size_bytes", 10485760),
            backup_count=a.get("backup_count", 5),
        ),
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RosterSettings:
    """Root of the settings tree."""

    maintainer_email: str
    sites: SitesSettings
    certificates: CertificateSettings
    server: ServerSettings
    proxy: ProxySettings
    logging: LoggingSettings


def build_settings(data: dict) -> RosterSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`RosterConfig` initialisation after
    environment-variable resolution and schema validation.
    """
    return RosterSettings(
        maintainer_email=data.get("maintainer_email", "admin@example.com"),
        sites=_build_sites(data.get("sites")),
        certificates=_build_certificates(data.get("certificates")),
        server=_build_server(data.get("server")),
        proxy=_build_proxy(data.get("proxy")),
        logging=_build_logging(data.get("logging")),
    )
