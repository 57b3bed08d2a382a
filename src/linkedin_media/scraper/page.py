"""Fetch a post page and parse it into a queryable document."""

import logging
from typing import Optional

import aiohttp
from bs4 import BeautifulSoup

from ..config import ExtractorConfig
from ..errors import ErrorCode, ExtractionError, FetchError
from ..fetcher.guarded import GuardedFetcher, allowed_host_set
from ..utils.formatting import normalize_whitespace
from ..validator.url_policy import UrlPolicy, parse_url
from .media_patterns import attr, meta_content, scan_scripts

logger = logging.getLogger(__name__)


BLOCKED_STATUSES = frozenset({401, 403, 999})

AUTH_WALL_PHRASES = ["sign in", "log in", "join linkedin", "linkedin login"]


def browser_headers(config: ExtractorConfig) -> dict[str, str]:
    return {
        "User-Agent": config.user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }


def has_auth_wall(soup: BeautifulSoup) -> bool:
    """Detect a sign-in interstitial from the page title and og:title."""
    title_tag = soup.find("title")
    title = normalize_whitespace(title_tag.get_text()) if title_tag else ""
    combined = f"{title} {meta_content(soup, 'og:title')}".lower()
    return any(phrase in combined for phrase in AUTH_WALL_PHRASES)


def extract_canonical_url(soup: BeautifulSoup, fallback_url: str) -> str:
    canonical = soup.select_one('link[rel="canonical"]')
    candidate = (
        (normalize_whitespace(attr(canonical, "href")) if canonical else "")
        or meta_content(soup, "og:url")
        or fallback_url
    )
    parsed = parse_url(candidate)
    if not parsed or parsed.scheme.lower() != "https":
        return fallback_url
    return parsed.geturl()


class PostPage:
    """A parsed post page plus values derived from it."""

    def __init__(self, url: str, soup: BeautifulSoup, config: ExtractorConfig, policy: UrlPolicy):
        self.url = url
        self.soup = soup
        self.config = config
        self.policy = policy
        self.canonical_url = extract_canonical_url(soup, url)
        self.preferred_referer: Optional[str] = policy.normalize_referer(self.canonical_url)
        self._script_media: dict[str, list[str]] = {}

    @classmethod
    def from_html(
        cls,
        html: str,
        url: str,
        config: Optional[ExtractorConfig] = None,
        policy: Optional[UrlPolicy] = None,
    ) -> "PostPage":
        config = config or ExtractorConfig()
        return cls(url, BeautifulSoup(html, "html.parser"), config, policy or UrlPolicy(config))

    def script_media_urls(self, kind: str) -> list[str]:
        """Inline-script scan for one media kind, computed once per page."""
        if kind not in self._script_media:
            self._script_media[kind] = scan_scripts(
                self.soup,
                kind,
                self.policy.is_allowed_media_url,
                max_length=self.config.max_script_length,
                base_url=self.config.post_origin,
                limit=self.config.max_media_count,
            )
        return list(self._script_media[kind])


class PageAcquirer:
    """Retrieves the post page through the guarded fetcher."""

    def __init__(self, fetcher: GuardedFetcher, config: Optional[ExtractorConfig] = None):
        self.fetcher = fetcher
        self.config = config or ExtractorConfig()
        self.policy = UrlPolicy(self.config)
        self.allowed_hosts = allowed_host_set([self.config.post_host])

    async def acquire(self, post_url: str) -> PostPage:
        """
        Fetch and parse a post page.

        Raises:
            ExtractionError: PRIVATE_OR_PROTECTED for blocked statuses or a
                sign-in wall, SCRAPE_FAILED for other failures
        """
        try:
            response = await self.fetcher.fetch(
                post_url,
                allowed_hosts=self.allowed_hosts,
                headers=browser_headers(self.config),
                timeout=self.config.fetch_timeout,
                max_redirects=self.config.max_redirects,
            )
        except (FetchError, aiohttp.ClientError) as e:
            raise ExtractionError(ErrorCode.SCRAPE_FAILED, f"LinkedIn fetch failed: {e}") from e

        if response.status in BLOCKED_STATUSES:
            raise ExtractionError(
                ErrorCode.PRIVATE_OR_PROTECTED, f"LinkedIn returned {response.status}"
            )

        if not response.ok:
            raise ExtractionError(ErrorCode.SCRAPE_FAILED, f"LinkedIn returned {response.status}")

        page = PostPage.from_html(response.text(), post_url, self.config, self.policy)

        if has_auth_wall(page.soup):
            raise ExtractionError(
                ErrorCode.PRIVATE_OR_PROTECTED, "LinkedIn page requires authentication"
            )

        logger.debug("Fetched post page %s (canonical %s)", post_url, page.canonical_url)
        return page
