"""Tests for deploy_spine.probes — HTTP ping readiness probe."""

from __future__ import annotations

import httpx

from deploy_spine.probes import http_ping_probe

URL = "http://localhost:8080/shop/index.html"


def transport_returning(status: int, body: str = "") -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: httpx.Response(status, text=body))


class TestHttpPingProbe:
    """Test http_ping_probe against a mocked transport."""

    def test_success(self):
        probe = http_ping_probe(URL, transport=transport_returning(200, "Shop is up"))
        assert probe() is True

    def test_requests_the_configured_url(self):
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(204)

        probe = http_ping_probe(URL, transport=httpx.MockTransport(handler))
        assert probe() is True
        assert seen == [URL]

    def test_non_2xx_is_not_ready(self):
        assert http_ping_probe(URL, transport=transport_returning(503))() is False
        assert http_ping_probe(URL, transport=transport_returning(404))() is False

    def test_expected_content_found(self):
        probe = http_ping_probe(URL, expected_content="Shop is up", transport=transport_returning(200, "<h1>Shop is up</h1>"))
        assert probe() is True

    def test_expected_content_missing(self):
        probe = http_ping_probe(URL, expected_content="Shop is up", transport=transport_returning(200, "Starting..."))
        assert probe() is False

    def test_connection_refused_is_not_ready(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        assert http_ping_probe(URL, transport=httpx.MockTransport(refuse))() is False

    def test_timeout_is_not_ready(self):
        def slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        assert http_ping_probe(URL, transport=httpx.MockTransport(slow))() is False

    def test_probe_is_reusable(self):
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            return httpx.Response(200 if calls["n"] >= 3 else 503)

        probe = http_ping_probe(URL, transport=httpx.MockTransport(handler))
        assert [probe(), probe(), probe()] == [False, False, True]
