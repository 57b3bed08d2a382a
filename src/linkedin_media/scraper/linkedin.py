"""LinkedIn scraper for LinkedIn posts."""

import logging
from typing import Optional, Sequence

from ..config import ExtractorConfig
from ..errors import ErrorCode, ExtractionError
from ..fetcher.guarded import GuardedFetcher
from ..fetcher.retry import with_retries
from ..utils.log import log_error
from ..validator.url_policy import UrlPolicy
from .base import BaseScraper, PostExtractionResult
from .media_patterns import add_candidate_url, filter_by_kind, meta_content
from .page import PageAcquirer, PostPage
from .strategies import ExtractionStrategy, PartialResult, default_strategies, merge_results

logger = logging.getLogger(__name__)


def is_transient_failure(error: BaseException) -> bool:
    """Only generic scrape failures (network, 5xx, timeouts) are retried."""
    return isinstance(error, ExtractionError) and error.code == ErrorCode.SCRAPE_FAILED


class LinkedInScraper(BaseScraper):
    """Scraper for LinkedIn posts."""

    platform = "linkedin"

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        fetcher: Optional[GuardedFetcher] = None,
        strategies: Optional[Sequence[ExtractionStrategy]] = None,
    ):
        self.config = config or ExtractorConfig()
        self.fetcher = fetcher or GuardedFetcher(timeout=self.config.fetch_timeout)
        self.policy = UrlPolicy(self.config)
        self.acquirer = PageAcquirer(self.fetcher, self.config)
        self.strategies = list(strategies) if strategies is not None else default_strategies(
            self.config, self.fetcher
        )

    def supports(self, url: str) -> bool:
        """Check if URL is a LinkedIn post."""
        return self.policy.is_valid_post_url(url)

    async def scrape(self, url: str) -> PostExtractionResult:
        """
        Scrape text and media URLs from a LinkedIn post.

        Invalid URLs fail immediately; generic scrape failures are retried
        with linear backoff.

        Raises:
            ExtractionError: INVALID_URL, PRIVATE_OR_PROTECTED,
                SCRAPE_FAILED or TEXT_NOT_FOUND
        """
        self.policy.assert_valid_post_url(url)

        def on_retry(error: BaseException, attempt: int) -> None:
            log_error(logger, "Retrying LinkedIn scrape", error, post_url=url, attempt=attempt)

        return await with_retries(
            lambda: self._scrape_once(url),
            retries=self.config.retry_count,
            base_delay=self.config.retry_base_delay,
            on_retry=on_retry,
            is_retryable=is_transient_failure,
        )

    async def _scrape_once(self, url: str) -> PostExtractionResult:
        page = await self.acquirer.acquire(url)
        merged = await self.run_strategies(page)

        if not merged.text:
            raise ExtractionError(ErrorCode.TEXT_NOT_FOUND, "Could not extract post text")

        return PostExtractionResult(
            text=merged.text,
            image_urls=merged.image_urls,
            video_urls=merged.video_urls,
            document_urls=merged.document_urls,
            preferred_referer=page.preferred_referer,
        )

    async def run_strategies(self, page: PostPage) -> PartialResult:
        """
        Run every strategy against a page and merge what they found.

        A failing strategy is logged and contributes nothing. When no
        strategy found any media, og:image is used as a last resort.
        """
        results = []
        for strategy in self.strategies:
            try:
                results.append(await strategy.extract(page))
            except Exception as e:
                log_error(logger, "Extraction strategy failed", e, strategy=strategy.name, post_url=page.url)

        merged = merge_results(results, self.config.max_media_count)

        if not merged.has_media:
            merged.image_urls = self._og_image_fallback(page)

        return merged

    def _og_image_fallback(self, page: PostPage) -> list[str]:
        images: list[str] = []
        for prop in ("og:image", "og:image:secure_url"):
            add_candidate_url(
                images,
                meta_content(page.soup, prop),
                self.policy.is_allowed_media_url,
                self.config.post_origin,
            )
        return filter_by_kind(images, "image")[: self.config.max_media_count]


async def scrape_linkedin_post(url: str, config: Optional[ExtractorConfig] = None) -> PostExtractionResult:
    """Scrape a post with a one-off session."""
    config = config or ExtractorConfig()
    async with GuardedFetcher(timeout=config.fetch_timeout) as fetcher:
        return await LinkedInScraper(config, fetcher).scrape(url)
