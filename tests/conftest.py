"""Shared fixtures: a route-table fetcher stub and small-limit config."""

import asyncio
import json

import pytest

from linkedin_media.config import ExtractorConfig
from linkedin_media.fetcher.guarded import FetchResponse, GuardedFetcher


POST_URL = "https://www.linkedin.com/posts/jane-doe_hello-activity-7000000000000000000-abcd"
IMAGE_URL = "https://media.licdn.com/dms/image/v2/D4E22AQ/feedshare-shrink_800/0/1700000000000?e=1&v=beta&t=abc"


class StubFetcher(GuardedFetcher):
    """
    GuardedFetcher whose network hop is served from a route table.

    The allow-list, https and redirect logic of the real fetcher still run;
    only ``_request`` is replaced. Every hop is recorded, and the number of
    concurrently outstanding hops is tracked.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.routes = {}
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    def route(self, url, status=200, body=b"", headers=None, delay=0.0):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (FetchResponse(url, status, dict(headers or {}), body), delay)

    def route_html(self, url, html, status=200, delay=0.0):
        self.route(url, status, html, {"Content-Type": "text/html; charset=utf-8"}, delay)

    def route_json(self, url, payload, status=200, delay=0.0):
        self.route(url, status, json.dumps(payload), {"Content-Type": "application/json"}, delay)

    def route_handler(self, url, handler, delay=0.0):
        """``handler(headers) -> FetchResponse``, for header-dependent replies."""
        self.routes[url] = (handler, delay)

    def fail(self, url, error, delay=0.0):
        self.routes[url] = (error, delay)

    def calls_to(self, url):
        return [headers for called, headers in self.calls if called == url]

    async def _request(self, url, method, headers):
        self.calls.append((url, dict(headers)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            reply, delay = self.routes.get(url, (None, 0.0))
            if delay:
                await asyncio.sleep(delay)
            if reply is None:
                return FetchResponse(url, 404, {"Content-Type": "text/plain"}, b"not found")
            if isinstance(reply, BaseException):
                raise reply
            if callable(reply):
                return reply(headers)
            return reply
        finally:
            self.in_flight -= 1


@pytest.fixture
def config():
    return ExtractorConfig(fetch_timeout=1.0, retry_base_delay=0.0)


@pytest.fixture
def fetcher():
    return StubFetcher(timeout=1.0)


def post_html(body="", head=""):
    """Minimal public post page around the given fragments."""
    return (
        "<html><head><title>Jane Doe on LinkedIn: Hello</title>"
        f'<link rel="canonical" href="{POST_URL}"/>{head}</head>'
        f"<body>{body}</body></html>"
    )


def json_ld(payload):
    return f'<script type="application/ld+json">{json.dumps(payload)}</script>'
