"""Tests for redirect resolution, both unit level and through the engine.

Engine-level cases run over ``httpx.MockTransport`` so cross-origin hops can be
exercised without DNS.
"""

import httpx
import pytest

import HttpGet
from HttpGet.errors import InvalidURL, TooManyRedirects
from HttpGet.exchange import InFlightExchange
from HttpGet.redirect import (
    format_audit_trail,
    is_redirect,
    next_exchange,
    redirect_method,
    resolve_location,
)
from HttpGet.urls import normalize_url


def _exchange(url: str, method: str = "GET", headers=None, body=None) -> InFlightExchange:
    target = normalize_url(url)
    return InFlightExchange(
        target=target,
        method=method,
        headers=dict(headers or {}),
        body=body,
        attempted_url=url,
        derived_authorization=False,
    )


class TestHelpers:
    @pytest.mark.parametrize("status", [301, 302, 303, 307, 308])
    def test_redirect_statuses(self, status):
        assert is_redirect(status, {"location": "/x"})

    def test_redirect_without_location_is_final(self):
        assert not is_redirect(302, {})
        assert not is_redirect(300, {"location": "/x"})

    @pytest.mark.parametrize(
        "current, location, expected",
        [
            ("http://a.test/x/y", "/z", "http://a.test/z"),
            ("http://a.test/x/y", "z", "http://a.test/x/z"),
            ("http://a.test/x/y", "https://b.test/", "https://b.test/"),
            ("https://a.test/x", "//c.test/p", "https://c.test/p"),
        ],
    )
    def test_resolve_location(self, current, location, expected):
        assert resolve_location(current, location) == expected

    @pytest.mark.parametrize(
        "status, method, expected",
        [
            (301, "GET", "GET"),
            (301, "POST", "GET"),
            (302, "PUT", "GET"),
            (302, "HEAD", "HEAD"),
            (303, "POST", "GET"),
            (303, "HEAD", "HEAD"),
            (307, "POST", "POST"),
            (308, "PUT", "PUT"),
        ],
    )
    def test_redirect_method(self, status, method, expected):
        assert redirect_method(status, method) == expected

    def test_format_audit_trail(self):
        trail = [("http://a/", 301), ("http://b/", 302)]
        assert format_audit_trail(trail) == "http://a/ (301) → http://b/ (302)"


class TestNextExchange:
    def test_relative_location(self):
        hops = []
        current = _exchange("http://a.test/start")

        following = next_exchange(
            current,
            status_code=302,
            location="/next",
            origin=current.target.origin,
            max_redirects=10,
            hops=hops,
        )

        assert following.url == "http://a.test/next"
        assert following.hop == 1
        assert following.error_url == "http://a.test/next"
        assert hops == [("http://a.test/start", 302)]

    def test_method_change_drops_body_and_body_headers(self):
        current = _exchange(
            "http://a.test/form",
            method="POST",
            headers={"content-type": "text/plain", "content-length": "4", "x-keep": "1"},
            body=b"data",
        )

        following = next_exchange(
            current, status_code=303, location="/done", origin=current.target.origin,
            max_redirects=10, hops=[],
        )

        assert following.method == "GET"
        assert following.body is None
        assert following.headers == {"x-keep": "1"}

    def test_cross_origin_strips_credentials(self):
        current = _exchange(
            "http://a.test/", headers={"authorization": "Bearer t", "host": "virtual.a.test"}
        )

        following = next_exchange(
            current, status_code=302, location="http://b.test/", origin=current.target.origin,
            max_redirects=10, hops=[],
        )

        assert "authorization" not in following.headers
        assert "host" not in following.headers

    def test_same_origin_keeps_credentials(self):
        current = _exchange("http://a.test/", headers={"authorization": "Bearer t"})

        following = next_exchange(
            current, status_code=302, location="/other", origin=current.target.origin,
            max_redirects=10, hops=[],
        )

        assert following.headers["authorization"] == "Bearer t"

    def test_credentials_in_location_are_applied(self):
        current = _exchange("http://a.test/")

        following = next_exchange(
            current, status_code=302, location="http://u:p@b.test/", origin=current.target.origin,
            max_redirects=10, hops=[],
        )

        assert following.headers["authorization"] == normalize_url("http://u:p@b.test/").authorization
        assert following.derived_authorization

    def test_limit(self):
        hops = [("http://a.test/", 302)] * 2
        current = _exchange("http://a.test/")

        with pytest.raises(TooManyRedirects) as excinfo:
            next_exchange(
                current, status_code=302, location="/", origin=current.target.origin,
                max_redirects=2, hops=hops,
            )

        assert excinfo.value.url == "http://a.test/"
        assert len(excinfo.value.hops) == 3

    def test_unsupported_scheme(self):
        current = _exchange("http://a.test/")

        with pytest.raises(InvalidURL):
            next_exchange(
                current, status_code=302, location="ftp://a.test/file", origin=current.target.origin,
                max_redirects=10, hops=[],
            )


@pytest.mark.anyio
class TestEngineRedirects:
    async def test_cross_origin_chain_over_mock_transport(self, streamed_response):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((str(request.url), request.headers.get("authorization")))
            if request.url.host == "a.test":
                return httpx.Response(301, headers={"location": "http://b.test/landing"})
            return streamed_response(200, body=b"landed")

        response = await HttpGet.get(
            "http://user:pw@a.test/start", transport=httpx.MockTransport(handler)
        )

        assert response.code == 200
        assert response.buffer == b"landed"
        assert response.url == "http://b.test/landing"
        assert response.redirects == (("http://a.test/start", 301),)
        assert seen[0][1] is not None
        assert seen[1] == ("http://b.test/landing", None)

    async def test_max_redirects_option(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"location": "/again"})

        with pytest.raises(TooManyRedirects) as excinfo:
            await HttpGet.get(
                "http://a.test/", max_redirects=0, transport=httpx.MockTransport(handler)
            )

        assert excinfo.value.url == "http://a.test/"
        assert excinfo.value.max_redirects == 0

    async def test_invalid_redirect_target_reports_url(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"location": "http://.broken/"})

        with pytest.raises(InvalidURL) as excinfo:
            await HttpGet.get("http://a.test/", transport=httpx.MockTransport(handler))

        assert excinfo.value.url == "http://.broken/"

    async def test_redirect_response_without_location_is_returned(self, streamed_response):
        def handler(request: httpx.Request) -> httpx.Response:
            return streamed_response(302, body=b"nowhere")

        response = await HttpGet.get("http://a.test/", transport=httpx.MockTransport(handler))

        assert response.code == 302
        assert response.buffer == b"nowhere"
