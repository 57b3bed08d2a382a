"""Tests for the guarded fetcher."""

import pytest

from linkedin_media.errors import (
    BlockedHostError,
    FetchTimeoutError,
    InsecureSchemeError,
    InvalidFetchUrlError,
    MissingLocationError,
    TooManyRedirectsError,
)
from linkedin_media.fetcher import FetchResponse, allowed_host_set, is_hostname_allowed

from conftest import StubFetcher


ALLOWED = allowed_host_set(["a.example.com", "b.example.com"])


class TestFetchResponse:
    """Tests for FetchResponse."""

    def test_headers_case_insensitive(self):
        response = FetchResponse("https://a.example.com/", 200, {"Content-Type": "Image/JPEG; q=1"})
        assert response.header("content-type") == "Image/JPEG; q=1"
        assert response.content_type == "image/jpeg"

    def test_status_flags(self):
        assert FetchResponse("u", 204).ok is True
        assert FetchResponse("u", 404).ok is False
        assert FetchResponse("u", 308).is_redirect is True
        assert FetchResponse("u", 304).is_redirect is False

    def test_json(self):
        assert FetchResponse("u", 200, body=b'{"a": 1}').json() == {"a": 1}

    def test_text_uses_declared_charset(self):
        body = "Привет, мир".encode("cp1251")
        response = FetchResponse("u", 200, {"Content-Type": "text/html; charset=windows-1251"}, body)
        assert response.charset == "cp1251"
        assert response.text() == "Привет, мир"

    def test_text_quoted_latin1_charset(self):
        headers = {"Content-Type": 'text/html; Charset="ISO-8859-1"'}
        response = FetchResponse("u", 200, headers, "café".encode("latin-1"))
        assert response.text() == "café"

    def test_text_defaults_to_utf8(self):
        response = FetchResponse("u", 200, {"Content-Type": "text/html"}, "café".encode("utf-8"))
        assert response.charset is None
        assert response.text() == "café"

    def test_unknown_charset_falls_back_to_utf8(self):
        headers = {"Content-Type": "text/html; charset=x-nope"}
        response = FetchResponse("u", 200, headers, "café".encode("utf-8"))
        assert response.charset is None
        assert response.text() == "café"

    def test_explicit_encoding_wins(self):
        headers = {"Content-Type": "text/html; charset=utf-8"}
        response = FetchResponse("u", 200, headers, "café".encode("latin-1"))
        assert response.text("latin-1") == "café"

    def test_json_honours_charset(self):
        body = '{"title": "Привет"}'.encode("utf-16")
        response = FetchResponse("u", 200, {"Content-Type": "application/json; charset=utf-16"}, body)
        assert response.json() == {"title": "Привет"}


class TestHostnameAllowed:
    """Tests for is_hostname_allowed."""

    def test_set(self):
        assert is_hostname_allowed("A.Example.com", ALLOWED) is True
        assert is_hostname_allowed("c.example.com", ALLOWED) is False

    def test_list(self):
        assert is_hostname_allowed("b.example.com", ["B.example.com"]) is True

    def test_predicate(self):
        assert is_hostname_allowed("x.example.com", lambda host: host.endswith(".example.com")) is True

    def test_empty_hostname(self):
        assert is_hostname_allowed("", ALLOWED) is False


class TestGuardedFetcher:
    """Tests for redirect handling and policy checks."""

    @pytest.mark.asyncio
    async def test_plain_fetch(self):
        fetcher = StubFetcher()
        fetcher.route("https://a.example.com/x", body="ok")
        response = await fetcher.fetch("https://a.example.com/x", allowed_hosts=ALLOWED)
        assert response.status == 200
        assert response.body == b"ok"

    @pytest.mark.asyncio
    async def test_allowed_hosts_required(self):
        with pytest.raises(ValueError):
            await StubFetcher().fetch("https://a.example.com/x", allowed_hosts=None)

    @pytest.mark.asyncio
    async def test_follows_relative_redirect(self):
        fetcher = StubFetcher()
        fetcher.route("https://a.example.com/start", 302, headers={"Location": "/next"})
        fetcher.route("https://a.example.com/next", body="done")

        response = await fetcher.fetch("https://a.example.com/start", allowed_hosts=ALLOWED)

        assert response.url == "https://a.example.com/next"
        assert [url for url, _ in fetcher.calls] == [
            "https://a.example.com/start",
            "https://a.example.com/next",
        ]

    @pytest.mark.asyncio
    async def test_follows_redirect_to_other_allowed_host(self):
        fetcher = StubFetcher()
        fetcher.route("https://a.example.com/x", 301, headers={"Location": "https://b.example.com/y"})
        fetcher.route("https://b.example.com/y", body="done")

        response = await fetcher.fetch("https://a.example.com/x", allowed_hosts=ALLOWED)
        assert response.status == 200

    @pytest.mark.asyncio
    async def test_redirect_to_blocked_host(self):
        fetcher = StubFetcher()
        fetcher.route("https://a.example.com/x", 302, headers={"Location": "https://evil.example.net/"})

        with pytest.raises(BlockedHostError, match="Blocked redirect hostname: evil.example.net"):
            await fetcher.fetch("https://a.example.com/x", allowed_hosts=ALLOWED)

        # the blocked hop is never requested
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_blocked_after_allowed_hops(self):
        fetcher = StubFetcher()
        fetcher.route("https://a.example.com/1", 302, headers={"Location": "https://b.example.com/2"})
        fetcher.route("https://b.example.com/2", 307, headers={"Location": "https://evil.example.net/3"})

        with pytest.raises(BlockedHostError) as exc_info:
            await fetcher.fetch("https://a.example.com/1", allowed_hosts=ALLOWED, max_redirects=3)
        assert exc_info.value.hostname == "evil.example.net"

    @pytest.mark.asyncio
    async def test_blocked_host_on_last_hop_within_budget(self):
        fetcher = StubFetcher()
        fetcher.route("https://a.example.com/1", 302, headers={"Location": "https://b.example.com/2"})
        fetcher.route("https://b.example.com/2", 307, headers={"Location": "https://evil.example.net/3"})

        with pytest.raises(BlockedHostError) as exc_info:
            await fetcher.fetch("https://a.example.com/1", allowed_hosts=ALLOWED, max_redirects=2)

        assert exc_info.value.hostname == "evil.example.net"
        assert [url for url, _ in fetcher.calls] == [
            "https://a.example.com/1",
            "https://b.example.com/2",
        ]

    @pytest.mark.asyncio
    async def test_initial_host_blocked(self):
        fetcher = StubFetcher()
        with pytest.raises(BlockedHostError, match="Blocked hostname: evil.example.net"):
            await fetcher.fetch("https://evil.example.net/", allowed_hosts=ALLOWED)
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_http_rejected(self):
        fetcher = StubFetcher()
        with pytest.raises(InsecureSchemeError):
            await fetcher.fetch("http://a.example.com/x", allowed_hosts=ALLOWED)

    @pytest.mark.asyncio
    async def test_redirect_downgrade_to_http_rejected(self):
        fetcher = StubFetcher()
        fetcher.route("https://a.example.com/x", 302, headers={"Location": "http://a.example.com/y"})

        with pytest.raises(InsecureSchemeError):
            await fetcher.fetch("https://a.example.com/x", allowed_hosts=ALLOWED)
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_invalid_url(self):
        with pytest.raises(InvalidFetchUrlError):
            await StubFetcher().fetch("not a url", allowed_hosts=ALLOWED)

    @pytest.mark.asyncio
    async def test_missing_location(self):
        fetcher = StubFetcher()
        fetcher.route("https://a.example.com/x", 302)

        with pytest.raises(MissingLocationError):
            await fetcher.fetch("https://a.example.com/x", allowed_hosts=ALLOWED)

    @pytest.mark.asyncio
    async def test_redirect_budget(self):
        fetcher = StubFetcher()
        fetcher.route("https://a.example.com/loop", 302, headers={"Location": "/loop"})

        with pytest.raises(TooManyRedirectsError):
            await fetcher.fetch("https://a.example.com/loop", allowed_hosts=ALLOWED, max_redirects=2)

        # initial request plus two followed redirects
        assert len(fetcher.calls) == 3

    @pytest.mark.asyncio
    async def test_zero_redirects(self):
        fetcher = StubFetcher()
        fetcher.route("https://a.example.com/x", 302, headers={"Location": "/y"})

        with pytest.raises(TooManyRedirectsError):
            await fetcher.fetch("https://a.example.com/x", allowed_hosts=ALLOWED, max_redirects=0)
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_timeout_cancels_request(self):
        fetcher = StubFetcher()
        fetcher.route("https://a.example.com/slow", body="late", delay=5.0)

        with pytest.raises(FetchTimeoutError, match="Request timeout after 0.05s"):
            await fetcher.fetch("https://a.example.com/slow", allowed_hosts=ALLOWED, timeout=0.05)

        assert fetcher.in_flight == 0

    @pytest.mark.asyncio
    async def test_headers_merged_over_defaults(self):
        fetcher = StubFetcher(default_headers={"User-Agent": "ua", "Accept": "*/*"})
        fetcher.route("https://a.example.com/x")

        await fetcher.fetch("https://a.example.com/x", allowed_hosts=ALLOWED, headers={"Accept": "text/html"})

        assert fetcher.calls[0][1] == {"User-Agent": "ua", "Accept": "text/html"}
