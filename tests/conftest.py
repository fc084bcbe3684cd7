"""Root conftest for the Roster test suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)


SITE_APP_SOURCE = '''
def app(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [b"{domain}"]
'''


# ---------------------------------------------------------------------------
# Site source fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def site_source(tmp_path: Path) -> Path:
    """An empty site-source directory."""
    path = tmp_path / "www"
    path.mkdir()
    return path


@pytest.fixture()
def make_site(site_source: Path):
    """Factory: create ``<site_source>/<domain>/app.py``.

    Pass ``source=None`` to create the directory without a handler.
    """

    def _make(domain: str, source: str | None = SITE_APP_SOURCE) -> Path:
        directory = site_source / domain
        directory.mkdir()
        if source is not None:
            (directory / "app.py").write_text(
                source.replace("{domain}", domain),
                encoding="utf-8",
            )
        return directory

    return _make


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_config_data(tmp_path: Path, site_source: Path) -> dict:
    """Return a config dict pointing at temp directories."""
    return {
        "maintainer_email": "ops@roster.test",
        "sites": {"path": str(site_source)},
        "certificates": {"config_dir": str(tmp_path / "greenlock.d"), "staging": True},
    }


@pytest.fixture()
def tmp_config_file(tmp_path: Path, minimal_config_data: dict) -> Path:
    """Write *minimal_config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.safe_dump(minimal_config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


# ---------------------------------------------------------------------------
# Config singleton cleanup, autouse so every test gets a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the RosterConfig singleton before and after every test."""
    from roster.config.roster_config import RosterConfig

    RosterConfig.reset()
    yield
    RosterConfig.reset()


# ---------------------------------------------------------------------------
# configure_logging() detaches the ``roster`` logger from the root logger;
# restore it so caplog keeps working in later tests.
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def restore_roster_loggers():
    """Snapshot and restore the ``roster`` logger hierarchy."""
    import logging

    names = ("roster", "roster.access", "roster.audit")
    saved = {}
    for name in names:
        lg = logging.getLogger(name)
        saved[name] = (lg.level, lg.propagate, list(lg.handlers))
    yield
    for name, (level, propagate, handlers) in saved.items():
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.propagate = propagate
        lg.handlers[:] = handlers
