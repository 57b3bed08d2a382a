"""Media downloader for resolved LinkedIn CDN URLs."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..config import ExtractorConfig
from ..fetcher.guarded import FetchResponse, GuardedFetcher
from ..utils.formatting import normalize_whitespace
from ..utils.log import log_error
from ..validator.url_policy import UrlPolicy
from .classify import infer_media_type, media_filename, normalize_mime

logger = logging.getLogger(__name__)


AUTH_FAILURE_STATUSES = frozenset({401, 403})


@dataclass
class MediaCandidate:
    """A URL the caller wants downloaded, with a type hint."""

    url: str
    requested_type: str = "image"
    referer: Optional[str] = None


@dataclass
class DownloadedMedia:
    """A downloaded media body, classified by its response content type."""

    url: str
    buffer: bytes
    media_type: str  # image, video, document
    mime_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.buffer)


class MediaDownloadError(RuntimeError):
    """Raised for a single item that could not be downloaded or classified."""


class MediaDownloader:
    """Downloads media from the CDN with bounded concurrency."""

    def __init__(
        self,
        fetcher: Optional[GuardedFetcher] = None,
        config: Optional[ExtractorConfig] = None,
    ):
        """
        Initialize the downloader.

        Args:
            fetcher: Guarded fetcher used for every request
            config: Limits, allow-lists and default referers
        """
        self.config = config or ExtractorConfig()
        self.fetcher = fetcher or GuardedFetcher(timeout=self.config.fetch_timeout)
        self.policy = UrlPolicy(self.config)

    def _headers(self, referer: str) -> dict[str, str]:
        return {
            "User-Agent": self.config.user_agent,
            "Accept": "*/*",
            "Accept-Language": "en-US,en;q=0.9",
            "Referer": referer,
        }

    def prepare(
        self,
        candidates: Iterable[MediaCandidate],
        referer: Optional[str] = None,
    ) -> list[MediaCandidate]:
        """Deduplicate, drop non-CDN URLs, resolve referers and cap the list."""
        prepared: list[MediaCandidate] = []
        seen: set[str] = set()

        for candidate in candidates or []:
            url = normalize_whitespace(candidate.url)
            if not url or url in seen or not self.policy.is_allowed_media_url(url):
                continue

            seen.add(url)
            prepared.append(MediaCandidate(
                url=url,
                requested_type=candidate.requested_type or "image",
                referer=self.policy.normalize_referer(candidate.referer or referer),
            ))

        return prepared[: self.config.max_download_count]

    async def download(
        self,
        candidates: Iterable[MediaCandidate],
        referer: Optional[str] = None,
    ) -> list[DownloadedMedia]:
        """
        Download media candidates.

        Args:
            candidates: URLs with type hints (and optional per-item referer)
            referer: Preferred referer, usually the post origin

        Returns:
            Downloaded media in input order; failed items are logged and
            left out
        """
        entries = self.prepare(candidates, referer)
        if not entries:
            return []

        semaphore = asyncio.Semaphore(self.config.download_concurrency)

        async def download_with_semaphore(index: int, entry: MediaCandidate) -> Optional[DownloadedMedia]:
            async with semaphore:
                try:
                    return await self._download_one(index, entry)
                except Exception as e:
                    log_error(logger, "Skipping media after download failure", e, url=entry.url)
                    return None

        tasks = [download_with_semaphore(index, entry) for index, entry in enumerate(entries)]
        results = await asyncio.gather(*tasks)
        return [result for result in results if result is not None]

    async def _download_one(self, index: int, entry: MediaCandidate) -> DownloadedMedia:
        response = await self._fetch_with_referers(entry)

        if response is None or not response.ok:
            status = response.status if response is not None else "unknown"
            raise MediaDownloadError(f"Media download returned {status}")

        mime_type = normalize_mime(response.header("content-type"))
        if not response.body:
            raise MediaDownloadError("Empty media buffer")

        media_type = infer_media_type(entry.requested_type, mime_type, entry.url)
        if not media_type:
            raise MediaDownloadError(
                f"Unsupported content type: {response.header('content-type') or ''}"
            )

        return DownloadedMedia(
            url=entry.url,
            buffer=response.body,
            media_type=media_type,
            mime_type=mime_type,
            filename=media_filename(index, media_type, mime_type, entry.url),
        )

    async def _fetch_with_referers(self, entry: MediaCandidate) -> Optional[FetchResponse]:
        """Try each referer; only 401/403 moves on to the next one."""
        response: Optional[FetchResponse] = None

        for referer in self.policy.referer_candidates(entry.referer):
            response = await self.fetcher.fetch(
                entry.url,
                allowed_hosts=self.policy.is_allowed_media_host,
                headers=self._headers(referer),
                timeout=self.config.fetch_timeout,
                max_redirects=self.config.max_redirects,
            )
            if response.status not in AUTH_FAILURE_STATUSES:
                return response

        return response


async def download_media(
    candidates: Iterable[MediaCandidate],
    referer: Optional[str] = None,
    config: Optional[ExtractorConfig] = None,
) -> list[DownloadedMedia]:
    """Download media with a one-off session."""
    config = config or ExtractorConfig()
    async with GuardedFetcher(timeout=config.fetch_timeout) as fetcher:
        return await MediaDownloader(fetcher, config).download(candidates, referer)
