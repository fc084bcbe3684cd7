"""Tests for roster.sites.registry.discover()."""

from __future__ import annotations

import logging
from io import BytesIO

import pytest

from roster.core.errors import DiscoveryError
from roster.sites.registry import discover


def _call(handler) -> bytes:
    status = {}

    def start_response(s, headers):
        status["status"] = s

    body = b"".join(handler({"wsgi.input": BytesIO()}, start_response))
    assert status["status"] == "200 OK"
    return body


class TestDiscover:
    def test_loads_each_site_directory(self, site_source, make_site):
        make_site("a.com")
        make_site("b.org")

        registry = discover(site_source)

        assert registry.root_domains == ("a.com", "b.org")
        assert registry.domains == frozenset(
            {"a.com", "www.a.com", "b.org", "www.b.org"},
        )

    def test_root_and_www_share_handler(self, site_source, make_site):
        make_site("a.com")
        registry = discover(site_source)

        handler = registry.get_handler("a.com")
        assert handler is registry.get_handler("www.a.com")
        assert _call(handler) == b"a.com"

    def test_missing_source_raises(self, tmp_path):
        with pytest.raises(DiscoveryError) as excinfo:
            discover(tmp_path / "missing")
        assert excinfo.value.path == tmp_path / "missing"

    def test_source_is_file_raises(self, tmp_path):
        f = tmp_path / "file"
        f.write_text("x")
        with pytest.raises(DiscoveryError):
            discover(f)

    def test_directory_without_handler_skipped(self, site_source, make_site, caplog):
        make_site("a.com")
        make_site("empty.com", source=None)

        with caplog.at_level(logging.WARNING, logger="roster.sites.registry"):
            registry = discover(site_source)

        assert registry.root_domains == ("a.com",)
        assert any("empty.com" in r.getMessage() for r in caplog.records)

    def test_import_error_skipped(self, site_source, make_site, caplog):
        make_site("a.com")
        make_site("broken.com", source="raise RuntimeError('boom')\n")

        with caplog.at_level(logging.WARNING, logger="roster.sites.registry"):
            registry = discover(site_source)

        assert registry.root_domains == ("a.com",)
        assert any("boom" in r.getMessage() for r in caplog.records)

    def test_missing_attribute_skipped(self, site_source, make_site):
        make_site("noapp.com", source="application = None\n")
        registry = discover(site_source)
        assert len(registry) == 0

    def test_non_callable_attribute_skipped(self, site_source, make_site):
        make_site("bad.com", source="app = 42\n")
        registry = discover(site_source)
        assert len(registry) == 0

    def test_files_and_hidden_directories_ignored(self, site_source, make_site):
        make_site("a.com")
        make_site(".cache")
        (site_source / "README").write_text("not a site")

        registry = discover(site_source)
        assert registry.root_domains == ("a.com",)

    def test_domains_are_lowercased(self, site_source, make_site):
        make_site("Example.COM")
        registry = discover(site_source)
        assert registry.root_domains == ("example.com",)

    def test_www_directory_registered_as_root(self, site_source, make_site):
        make_site("www.a.com")
        registry = discover(site_source)
        assert registry.root_domains == ("a.com",)
        assert "www.a.com" in registry

    def test_duplicate_after_normalisation_skipped(self, site_source, make_site, caplog):
        make_site("a.com")
        make_site("www.a.com")

        with caplog.at_level(logging.WARNING, logger="roster.sites.registry"):
            registry = discover(site_source)

        assert registry.root_domains == ("a.com",)
        assert any("duplicate" in r.getMessage() for r in caplog.records)

    def test_custom_handler_module_and_attribute(self, site_source):
        d = site_source / "a.com"
        d.mkdir()
        (d / "wsgi.py").write_text(
            "def application(environ, start_response):\n"
            "    start_response('200 OK', [])\n"
            "    return [b'custom']\n",
            encoding="utf-8",
        )

        registry = discover(
            site_source,
            handler_module="wsgi.py",
            handler_attribute="application",
        )
        assert _call(registry.get_handler("a.com")) == b"custom"

    def test_one_diagnostic_per_site(self, site_source, make_site, caplog):
        make_site("a.com")
        make_site("b.com", source=None)

        with caplog.at_level(logging.INFO, logger="roster.sites.registry"):
            discover(site_source)

        messages = [r.getMessage() for r in caplog.records]
        assert sum("a.com" in m for m in messages) == 1
        assert sum("b.com" in m for m in messages) == 1

    def test_empty_source_warns(self, site_source, caplog):
        with caplog.at_level(logging.WARNING, logger="roster.sites.registry"):
            registry = discover(site_source)
        assert len(registry) == 0
        assert any("No sites" in r.getMessage() for r in caplog.records)
