"""Tests for roster.sites.registry.DomainRegistry."""

from __future__ import annotations

import pytest

from roster.sites.base import Site
from roster.sites.registry import DomainRegistry


def _handler():
    def _app(environ, start_response):
        start_response("200 OK", [])
        return [b""]

    return _app


class TestSite:
    def test_names_are_root_then_www(self):
        site = Site(domain="a.com", handler=_handler())
        assert site.names == ("a.com", "www.a.com")


class TestDomainRegistry:
    def test_registers_root_and_www(self):
        h = _handler()
        registry = DomainRegistry([Site("a.com", h)])

        assert registry.domains == frozenset({"a.com", "www.a.com"})
        assert registry.get_handler("a.com") is h
        assert registry.get_handler("www.a.com") is h

    def test_unknown_host_returns_none(self):
        registry = DomainRegistry([Site("a.com", _handler())])
        assert registry.get_handler("b.com") is None

    def test_lookup_is_exact(self):
        registry = DomainRegistry([Site("a.com", _handler())])
        assert registry.get_handler("A.com") is None
        assert registry.get_handler("x.a.com") is None

    def test_duplicate_domain_rejected(self):
        with pytest.raises(ValueError, match="more than once"):
            DomainRegistry([Site("a.com", _handler()), Site("a.com", _handler())])

    def test_root_domains_sorted(self):
        registry = DomainRegistry(
            [Site("c.com", _handler()), Site("a.com", _handler())],
        )
        assert registry.root_domains == ("a.com", "c.com")

    def test_container_protocol(self):
        registry = DomainRegistry([Site("a.com", _handler())])
        assert "www.a.com" in registry
        assert "b.com" not in registry
        assert len(registry) == 1
        assert [s.domain for s in registry] == ["a.com"]

    def test_handlers_mapping_is_read_only(self):
        registry = DomainRegistry([Site("a.com", _handler())])
        with pytest.raises(TypeError):
            registry.handlers["b.com"] = _handler()  # type: ignore[index]

    def test_empty_registry(self):
        registry = DomainRegistry()
        assert len(registry) == 0
        assert registry.domains == frozenset()


class TestFromPairs:
    def test_normalises_domains(self):
        h = _handler()
        registry = DomainRegistry.from_pairs([("Example.COM.", h)])
        assert registry.get_handler("example.com") is h
        assert registry.get_handler("www.example.com") is h

    def test_www_pair_registered_under_root(self):
        registry = DomainRegistry.from_pairs([("www.a.com", _handler())])
        assert registry.root_domains == ("a.com",)
        assert "www.a.com" in registry

    def test_root_and_www_pairs_collide(self):
        with pytest.raises(ValueError):
            DomainRegistry.from_pairs([("a.com", _handler()), ("www.a.com", _handler())])
