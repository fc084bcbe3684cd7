"""Tests for the WSGI middleware in roster.app.middleware."""

from __future__ import annotations

from werkzeug.test import Client
from werkzeug.wrappers import Response

from roster.app.middleware import (
    HostDispatchMiddleware,
    TrustedProxyMiddleware,
    original_url,
)
from roster.app.router import HostRouter
from roster.sites.registry import DomainRegistry


def _site(body: bytes):
    def _app(environ, start_response):
        start_response("200 OK", [("Content-Type", "text/plain")])
        return [body]

    return _app


def _fallback(environ, start_response):
    start_response("404 NOT FOUND", [("Content-Type", "text/plain")])
    return [b"fallback"]


def _client() -> Client:
    registry = DomainRegistry.from_pairs([("a.com", _site(b"a")), ("b.org", _site(b"b"))])
    app = HostDispatchMiddleware(_fallback, HostRouter(registry))
    return Client(app, Response)


class TestHostDispatchMiddleware:
    def test_dispatches_to_site(self):
        resp = _client().get("/", headers={"Host": "a.com"})
        assert resp.status_code == 200
        assert resp.data == b"a"

    def test_each_host_gets_its_own_site(self):
        resp = _client().get("/", headers={"Host": "b.org"})
        assert resp.data == b"b"

    def test_www_redirect(self):
        resp = _client().get("/p", headers={"Host": "www.a.com"})
        assert resp.status_code == 301
        assert resp.headers["Location"] == "https://a.com/p"

    def test_redirect_includes_query(self):
        resp = _client().get("/p?x=1", headers={"Host": "www.a.com"})
        assert resp.headers["Location"] == "https://a.com/p?x=1"

    def test_redirect_keeps_percent_escapes(self):
        resp = _client().get("/a%2Fb%3Fc", headers={"Host": "www.a.com"})
        assert resp.headers["Location"] == "https://a.com/a%2Fb%3Fc"

    def test_unknown_host_goes_to_fallback(self):
        resp = _client().get("/", headers={"Host": "c.net"})
        assert resp.status_code == 404
        assert resp.data == b"fallback"


class TestOriginalUrl:
    def test_path_only(self):
        assert original_url({"PATH_INFO": "/a/b", "SCRIPT_NAME": ""}) == "/a/b"

    def test_with_mount_and_query(self):
        environ = {"PATH_INFO": "/b", "SCRIPT_NAME": "/mnt", "QUERY_STRING": "x=1"}
        assert original_url(environ) == "/mnt/b?x=1"

    def test_empty_path(self):
        assert original_url({}) == "/"

    def test_raw_uri_preferred(self):
        environ = {"RAW_URI": "/a%2Fb%3Fc?x=1", "PATH_INFO": "/a/b?c", "QUERY_STRING": "x=1"}
        assert original_url(environ) == "/a%2Fb%3Fc?x=1"

    def test_request_uri_used(self):
        environ = {"REQUEST_URI": "/mnt/%7Euser", "SCRIPT_NAME": "/mnt", "PATH_INFO": "/~user"}
        assert original_url(environ) == "/mnt/%7Euser"

    def test_absolute_form_target(self):
        environ = {"RAW_URI": "http://www.a.com/p%20q", "QUERY_STRING": ""}
        assert original_url(environ) == "/p%20q"

    def test_decoded_path_requoted(self):
        assert original_url({"PATH_INFO": "/a b"}) == "/a%20b"


class TestTrustedProxyMiddleware:
    @staticmethod
    def _echo(environ, start_response):
        start_response("200 OK", [("Content-Type", "text/plain")])
        body = "|".join(
            [environ["REMOTE_ADDR"], environ["wsgi.url_scheme"], environ.get("HTTP_HOST", "")],
        )
        return [body.encode()]

    def _client(self, trusted=("10.0.0.0/8",)) -> Client:
        return Client(TrustedProxyMiddleware(self._echo, trusted_proxies=trusted), Response)

    def test_trusted_proxy_headers_applied(self):
        resp = self._client().get(
            "/",
            headers={
                "Host": "internal:8080",
                "X-Forwarded-For": "203.0.113.7, 10.0.0.2",
                "X-Forwarded-Proto": "https",
                "X-Forwarded-Host": "a.com",
            },
            environ_base={"REMOTE_ADDR": "10.0.0.1"},
        )
        assert resp.data == b"203.0.113.7|https|a.com"

    def test_untrusted_peer_ignored(self):
        resp = self._client().get(
            "/",
            headers={"Host": "a.com", "X-Forwarded-Host": "evil.com", "X-Forwarded-For": "1.2.3.4"},
            environ_base={"REMOTE_ADDR": "198.51.100.9"},
        )
        assert resp.data == b"198.51.100.9|http|a.com"

    def test_first_forwarded_host_used(self):
        resp = self._client().get(
            "/",
            headers={"Host": "lb", "X-Forwarded-Host": "a.com, lb.internal"},
            environ_base={"REMOTE_ADDR": "10.1.1.1"},
        )
        assert resp.data.endswith(b"|a.com")

    def test_unparseable_proxy_entries_skipped(self):
        mw = TrustedProxyMiddleware(self._echo, trusted_proxies=["nonsense", "10.0.0.0/8"])
        assert len(mw._networks) == 1
