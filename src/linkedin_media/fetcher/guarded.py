"""HTTP fetching with per-hop allow-list checks on redirects."""

import asyncio
import codecs
import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Union
from urllib.parse import urljoin

import aiohttp

from ..errors import (
    BlockedHostError,
    FetchTimeoutError,
    InsecureSchemeError,
    InvalidFetchUrlError,
    MissingLocationError,
    TooManyRedirectsError,
)
from ..validator.url_policy import parse_url


AllowedHosts = Union[Callable[[str], bool], set, frozenset, list, tuple]

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

_CHARSET_RE = re.compile(r""";\s*charset\s*=\s*["']?([^"';\s]+)""", re.IGNORECASE)


@dataclass
class FetchResponse:
    """A fully read HTTP response for a single hop."""

    url: str
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def __post_init__(self) -> None:
        # Header lookups are case-insensitive
        self.headers = {key.lower(): value for key, value in self.headers.items()}

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_redirect(self) -> bool:
        return self.status in REDIRECT_STATUSES

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    @property
    def content_type(self) -> str:
        """Lower-cased MIME type without parameters, '' if absent."""
        raw = self.header("content-type") or ""
        return raw.split(";")[0].strip().lower()

    @property
    def charset(self) -> Optional[str]:
        """Codec named by the content-type charset parameter, None if absent or unknown."""
        match = _CHARSET_RE.search(self.header("content-type") or "")
        if not match:
            return None
        try:
            return codecs.lookup(match.group(1)).name
        except LookupError:
            return None

    def text(self, encoding: Optional[str] = None) -> str:
        """Decode the body with ``encoding``, else the declared charset, else UTF-8."""
        return self.body.decode(encoding or self.charset or "utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.text())


def is_hostname_allowed(hostname: str, allowed_hosts: AllowedHosts) -> bool:
    """Evaluate an allow-list given as a predicate, a set, or a list."""
    normalized = (hostname or "").lower()
    if not normalized:
        return False

    if callable(allowed_hosts):
        return bool(allowed_hosts(normalized))

    if isinstance(allowed_hosts, (set, frozenset)):
        return normalized in {host.lower() for host in allowed_hosts}

    if isinstance(allowed_hosts, (list, tuple)):
        return normalized in [host.lower() for host in allowed_hosts]

    return False


class GuardedFetcher:
    """
    Fetches URLs without letting redirects escape an allow-list.

    Redirect following is disabled on the underlying client; each
    ``Location`` is resolved, re-validated and requested by hand. Every hop
    must be https and must pass the allow-list.

    Can be used as an async context manager to share one aiohttp session;
    otherwise a session is opened per request.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 12.0,
        max_redirects: int = 3,
        default_headers: Optional[Mapping[str, str]] = None,
    ):
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.default_headers = dict(default_headers or {})
        self._session = session
        self._owns_session = False

    async def __aenter__(self) -> "GuardedFetcher":
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self._owns_session = False

    async def fetch(
        self,
        url: str,
        *,
        allowed_hosts: AllowedHosts,
        timeout: Optional[float] = None,
        max_redirects: Optional[int] = None,
        method: str = "GET",
        headers: Optional[Mapping[str, str]] = None,
    ) -> FetchResponse:
        """
        Fetch a URL, following redirects only to allowed hosts.

        Args:
            url: Absolute https URL
            allowed_hosts: Predicate, set or list of permitted hostnames
            timeout: Seconds per hop (defaults to the fetcher's timeout)
            max_redirects: Redirect hops to follow before giving up
            method: HTTP method
            headers: Request headers, merged over the defaults

        Returns:
            The first non-redirect response

        Raises:
            BlockedHostError, InsecureSchemeError, InvalidFetchUrlError,
            MissingLocationError, TooManyRedirectsError, FetchTimeoutError
        """
        if allowed_hosts is None:
            raise ValueError("allowed_hosts is required")

        timeout = self.timeout if timeout is None else timeout
        max_redirects = self.max_redirects if max_redirects is None else max_redirects
        request_headers = {**self.default_headers, **(headers or {})}

        current_url = str(url)
        redirect = False

        for _ in range(max_redirects + 1):
            parsed = parse_url(current_url)
            if not parsed:
                raise InvalidFetchUrlError(f"Invalid URL: {current_url}")

            if parsed.scheme.lower() != "https":
                raise InsecureSchemeError("Only HTTPS URLs are allowed")

            if not is_hostname_allowed(parsed.hostname, allowed_hosts):
                raise BlockedHostError(parsed.hostname, redirect=redirect)

            response = await self._request_with_timeout(
                current_url, method, request_headers, timeout
            )

            if not response.is_redirect:
                return response

            location = response.header("location")
            if not location:
                raise MissingLocationError("Redirect response missing location header")

            next_url = urljoin(current_url, location)
            next_parsed = parse_url(next_url)
            if not next_parsed:
                raise InvalidFetchUrlError(f"Invalid redirect URL: {location}")

            if not is_hostname_allowed(next_parsed.hostname, allowed_hosts):
                raise BlockedHostError(next_parsed.hostname, redirect=True)

            current_url = next_url
            redirect = True

        raise TooManyRedirectsError("Too many redirects")

    async def _request_with_timeout(
        self,
        url: str,
        method: str,
        headers: Mapping[str, str],
        timeout: float,
    ) -> FetchResponse:
        # wait_for cancels the request task, which closes the connection
        try:
            return await asyncio.wait_for(self._request(url, method, headers), timeout)
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(f"Request timeout after {timeout}s") from e

    async def _request(self, url: str, method: str, headers: Mapping[str, str]) -> FetchResponse:
        """Send one request with redirect following disabled and read the body."""
        if self._session is not None:
            return await self._send(self._session, url, method, headers)

        async with aiohttp.ClientSession() as session:
            return await self._send(session, url, method, headers)

    @staticmethod
    async def _send(
        session: aiohttp.ClientSession,
        url: str,
        method: str,
        headers: Mapping[str, str],
    ) -> FetchResponse:
        async with session.request(
            method, url, headers=dict(headers), allow_redirects=False
        ) as response:
            body = await response.read()
            return FetchResponse(
                url=str(response.url),
                status=response.status,
                headers=dict(response.headers),
                body=body,
            )


def allowed_host_set(hosts: Iterable[str]) -> frozenset:
    """Lower-case a host list into an allow-list set."""
    return frozenset(host.lower() for host in hosts)
