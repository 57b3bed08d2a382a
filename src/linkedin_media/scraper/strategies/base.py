"""Common interface and reducer for extraction strategies."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ...config import ExtractorConfig
from ...fetcher.guarded import FetchResponse, GuardedFetcher
from ...validator.url_policy import UrlPolicy
from ..media_patterns import add_candidate_url, merge_unique
from ..page import PostPage, browser_headers


@dataclass
class PartialResult:
    """One strategy's contribution to the extracted post."""

    text: str = ""
    image_urls: list[str] = field(default_factory=list)
    video_urls: list[str] = field(default_factory=list)
    document_urls: list[str] = field(default_factory=list)

    @property
    def has_media(self) -> bool:
        return bool(self.image_urls or self.video_urls or self.document_urls)

    def capped(self, limit: int) -> "PartialResult":
        return PartialResult(
            text=self.text,
            image_urls=self.image_urls[:limit],
            video_urls=self.video_urls[:limit],
            document_urls=self.document_urls[:limit],
        )


def merge_results(results: Iterable[PartialResult], limit: int) -> PartialResult:
    """
    Reduce partial results into one.

    Text comes from the first result that has any; media lists are unioned
    by exact URL and capped at ``limit``.
    """
    results = list(results)
    text = next((result.text for result in results if result.text), "")
    return PartialResult(
        text=text,
        image_urls=merge_unique(*(r.image_urls for r in results))[:limit],
        video_urls=merge_unique(*(r.video_urls for r in results))[:limit],
        document_urls=merge_unique(*(r.document_urls for r in results))[:limit],
    )


class ExtractionStrategy(ABC):
    """Abstract base class for one way of reading a post page."""

    name: str = "unknown"

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        fetcher: Optional[GuardedFetcher] = None,
    ):
        self.config = config or ExtractorConfig()
        self.fetcher = fetcher
        self.policy = UrlPolicy(self.config)

    @abstractmethod
    async def extract(self, page: PostPage) -> PartialResult:
        """
        Extract text and/or media from a parsed post page.

        Args:
            page: Parsed post page

        Returns:
            PartialResult with whatever this strategy found
        """
        pass

    def _add(self, urls: list[str], raw_value, seen: Optional[set[str]] = None) -> list[str]:
        return add_candidate_url(
            urls, raw_value, self.policy.is_allowed_media_url, self.config.post_origin, seen
        )


class RemoteStrategy(ExtractionStrategy):
    """A strategy that issues its own guarded fetches to the media CDN."""

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        fetcher: Optional[GuardedFetcher] = None,
    ):
        super().__init__(config, fetcher or GuardedFetcher())
        self.semaphore_size = self.config.embed_fetch_concurrency

    async def _fetch_media_host(self, url: str, referer: str, accept: Optional[str] = None) -> FetchResponse:
        headers = {**browser_headers(self.config), "Referer": referer}
        if accept:
            headers["Accept"] = accept
        return await self.fetcher.fetch(
            url,
            allowed_hosts=self.policy.is_allowed_media_host,
            headers=headers,
            timeout=self.config.fetch_timeout,
            max_redirects=self.config.max_redirects,
        )

    async def _gather_limited(self, coroutine_factory, items: list) -> list:
        """Run ``coroutine_factory(item)`` for each item, a few at a time."""
        semaphore = asyncio.Semaphore(self.semaphore_size)

        async def run(item):
            async with semaphore:
                return await coroutine_factory(item)

        return await asyncio.gather(*(run(item) for item in items))
