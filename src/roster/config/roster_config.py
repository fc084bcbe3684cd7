"""Roster configuration loader.

Lifecycle::

    # 1. The CLI (or WSGI entry point) creates the singleton once
    RosterConfig(config_file="/etc/roster/config.yaml")

    # 2. Any module retrieves it afterwards
    from roster.config import get_config
    cfg = get_config()
    cfg.settings.sites.path  # typed access

    # 3. Dynamic access
    cfg.get("certificates.staging", default=False)

Loading order: read YAML/JSON, resolve ``${VAR}`` / ``${VAR:-default}``
references, validate against the bundled JSON schema, run cross-field
checks, build the typed settings tree.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft7Validator

from roster.config.settings import RosterSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_PLACEHOLDER_EMAIL_DOMAINS = ("example.com", "example.org", "example.net")

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: RosterConfig | None = None


def get_config() -> RosterConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`RosterConfig` has not been
    created yet (i.e. the entry point has not run).
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "RosterConfig must be created with config_file= before calling get_config()."
        )
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when schema or cross-field validation finds problems."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> Any:  # noqa: ANN401
    """Replace ``${VAR}`` or ``${VAR:-default}`` with the env var value.

    Resolved values are parsed as YAML scalars so that
    ``${ROSTER_STAGING:-false}`` becomes a boolean.
    """
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is None:
        if fallback is None:
            raise ConfigValidationError(
                [
                    f"Environment variable '${{{var_name}}}' referenced "
                    f"at '{path}' is not set and has no default",
                ],
            )
        resolved = fallback
    try:
        scalar = yaml.safe_load(resolved)
    except yaml.YAMLError:
        return resolved
    if isinstance(scalar, (bool, int, float)):
        return scalar
    return resolved


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


def _read_file(path: Path) -> dict[str, Any]:
    """Parse a YAML or JSON config file into a dict."""
    with path.open(encoding="utf-8") as f:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(
            [f"{path}: top level must be a mapping, got {type(data).__name__}"],
        )
    return data


def _load_schema() -> dict[str, Any]:
    with _SCHEMA_PATH.open(encoding="utf-8") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class RosterConfig:
    """Central configuration for Roster.

    After construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.

    Parameters
    ----------
    config_file:
        Path to the YAML/JSON configuration file.

    """

    def __init__(self, *, config_file: str | Path) -> None:
        global _instance  # noqa: PLW0603

        self._config_file = Path(config_file)
        self._data: dict[str, Any] = self._load()
        self._validate_schema()
        self.additional_checks()
        self._settings: RosterSettings = build_settings(self._data)
        _instance = self

    # -- lifecycle ----------------------------------------------------------

    def _load(self) -> dict[str, Any]:
        """Load the config file then resolve ``${VAR}`` env-var references.

        Env-var resolution runs **before** schema validation so that
        substituted values are checked against the schema too.
        """
        data = _read_file(self._config_file)
        _resolve_env_vars(data)
        data["_source"] = str(self._config_file)
        return data

    def _validate_schema(self) -> None:
        validator = Draft7Validator(_load_schema())
        errors = [
            f"{'.'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
            for err in sorted(validator.iter_errors(self._data), key=str)
        ]
        if errors:
            raise ConfigValidationError(errors)

    # -- access -------------------------------------------------------------

    @property
    def settings(self) -> RosterSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    @property
    def data(self) -> dict[str, Any]:
        """The raw, env-resolved configuration dict."""
        return self._data

    def get(self, dot_path: str, default: Any = None) -> Any:  # noqa: ANN401
        """Look up a value by dotted path, e.g. ``"sites.path"``."""
        node: Any = self._data
        for part in dot_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:
        """Semantic & cross-field validation, run after schema validation."""
        errors: list[str] = []
        warnings: list[str] = []

        email = self._data.get("maintainer_email", "admin@example.com")
        sites = self._data.get("sites") or {}
        certificates = self._data.get("certificates") or {}
        server = self._data.get("server") or {}
        proxy = self._data.get("proxy") or {}

        # -- maintainer --
        local, _, domain = email.partition("@")
        if not local or not domain or "." not in domain:
            errors.append(
                f"maintainer_email must be an email address (got '{email}')",
            )
        elif domain.lower() in _PLACEHOLDER_EMAIL_DOMAINS:
            warnings.append(
                f"maintainer_email uses the placeholder domain '{domain}'; "
                "the ACME CA will not be able to reach you",
            )
            if not certificates.get("staging", False):
                warnings.append(
                    "certificates.staging is false with a placeholder "
                    "maintainer_email; production certificates will be requested",
                )

        # -- sites --
        handler_module = sites.get("handler_module", "app.py")
        if not handler_module.endswith(".py"):
            errors.append(
                f"sites.handler_module must name a .py file (got '{handler_module}')",
            )
        if "/" in handler_module or "\\" in handler_module:
            errors.append(
                "sites.handler_module must be a file name, not a path",
            )

        # -- certificates --
        config_file = certificates.get("config_file", "config.json")
        if "/" in config_file or "\\" in config_file:
            errors.append(
                "certificates.config_file must be a file name, not a path",
            )

        # -- server --
        certfile = server.get("certfile")
        keyfile = server.get("keyfile")
        if bool(certfile) != bool(keyfile):
            errors.append(
                "server.certfile and server.keyfile must be set together",
            )

        jitter = server.get("max_requests_jitter", 0)
        if jitter and not server.get("max_requests", 0):
            warnings.append(
                "server.max_requests_jitter has no effect without server.max_requests",
            )

        # -- proxy --
        if proxy.get("enabled") and not proxy.get("trusted_proxies"):
            warnings.append(
                "proxy.enabled is true but proxy.trusted_proxies is empty; "
                "forwarded headers from any client will be trusted",
            )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    def reload_settings(self) -> RosterSettings:
        """Re-read the config file and return a fresh settings tree.

        Does not replace the singleton or its current settings.
        """
        data = _read_file(self._config_file)
        _resolve_env_vars(data)
        return build_settings(data)

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        return f"<RosterConfig config_file={self._config_file}>"
