"""Embed-frame strategy: fetch embedded viewers and scan them for media."""

import logging
from typing import Optional

from bs4 import BeautifulSoup

from ...utils.log import log_error
from ..media_patterns import (
    MEDIA_KINDS,
    PATH_CHECKS,
    attr,
    extract_embedded_media_urls,
    extract_style_urls,
    merge_unique,
    pathname,
    scan_scripts,
)
from ..page import PostPage
from .base import PartialResult, RemoteStrategy

logger = logging.getLogger(__name__)


EMBED_FRAME_SELECTORS = [
    ".update-components-document__container iframe[src]",
    ".update-components-document iframe[src]",
    'iframe[src*="/embeds/native-document"]',
    'iframe[src*="media.licdn.com/embeds/"]',
    '[data-document-url*="/embeds/native-document"]',
]

FRAME_ATTRIBUTES = ["src", "data-document-url", "data-embed-url", "href"]

EMBED_MEDIA_SELECTOR = ", ".join([
    "img",
    "source",
    "video",
    "a",
    "iframe",
    "[style]",
    "[data-src]",
    "[data-sources]",
    "[data-player-config]",
    "[data-video-url]",
    "[data-document-url]",
    "[data-slide-image-url]",
    "[data-carousel-image-url]",
])

EMBED_MEDIA_ATTRIBUTES = [
    "src",
    "srcset",
    "href",
    "data-src",
    "data-delayed-url",
    "data-ghost-url",
    "data-lazy-src",
    "data-thumb-url",
    "data-url",
    "data-document-url",
    "data-video-url",
    "data-slide-image-url",
    "data-carousel-image-url",
    "data-mp4-source-url",
    "data-source-url",
    "data-manifest-url",
    "data-sources",
    "data-player-config",
    "style",
]


class EmbedStrategy(RemoteStrategy):
    """Fetches embed iframes from the media CDN and scans their markup."""

    name = "embed"

    async def extract(self, page: PostPage) -> PartialResult:
        frame_urls = self.extract_frame_urls(page)
        if not frame_urls:
            return PartialResult()

        referers = self.policy.referer_candidates(page.preferred_referer)
        results = await self._gather_limited(
            lambda url: self._scan_frame(url, referers), frame_urls
        )

        limit = self.config.max_media_count
        return PartialResult(
            image_urls=merge_unique(*(r.image_urls for r in results))[:limit],
            video_urls=merge_unique(*(r.video_urls for r in results))[:limit],
            document_urls=merge_unique(*(r.document_urls for r in results))[:limit],
        )

    def extract_frame_urls(self, page: PostPage) -> list[str]:
        frames: list[str] = []
        for selector in EMBED_FRAME_SELECTORS:
            for element in page.soup.select(selector):
                for name in FRAME_ATTRIBUTES:
                    self._add(frames, attr(element, name))

        frames = [url for url in frames if "/embeds/" in pathname(url)]
        return frames[: self.config.max_embed_fetches]

    async def _scan_frame(self, frame_url: str, referers: list[str]) -> PartialResult:
        try:
            html = await self._fetch_frame(frame_url, referers)
            return self.scan_embed_document(BeautifulSoup(html, "html.parser"))
        except Exception as e:
            log_error(logger, "Failed to parse embed frame", e, frame_url=frame_url)
            return PartialResult()

    async def _fetch_frame(self, frame_url: str, referers: list[str]) -> str:
        for referer in referers:
            response = await self._fetch_media_host(frame_url, referer)
            if response.ok:
                return response.text()

        raise RuntimeError("Embed fetch failed with all referers")

    def scan_embed_document(self, soup: BeautifulSoup) -> PartialResult:
        """Bucket every media URL in an embedded document by its CDN path."""
        candidates: list[str] = []
        seen: set[str] = set()

        for element in soup.select(EMBED_MEDIA_SELECTOR):
            for name in EMBED_MEDIA_ATTRIBUTES:
                value: Optional[str] = attr(element, name)
                if not value:
                    continue

                self._add(candidates, value, seen)
                for style_url in extract_style_urls(value):
                    self._add(candidates, style_url, seen)
                for kind in MEDIA_KINDS:
                    for url in extract_embedded_media_urls(value, kind):
                        self._add(candidates, url, seen)

        for kind in MEDIA_KINDS:
            for url in scan_scripts(
                soup,
                kind,
                self.policy.is_allowed_media_url,
                max_length=self.config.max_script_length,
                base_url=self.config.post_origin,
                limit=self.config.max_media_count,
            ):
                if url not in seen:
                    seen.add(url)
                    candidates.append(url)

        buckets: dict[str, list[str]] = {kind: [] for kind in MEDIA_KINDS}
        for url in candidates:
            path = pathname(url)
            for kind in MEDIA_KINDS:
                if PATH_CHECKS[kind](path):
                    buckets[kind].append(url)
                    break

        limit = self.config.max_media_count
        return PartialResult(
            image_urls=buckets["image"][:limit],
            video_urls=buckets["video"][:limit],
            document_urls=buckets["document"][:limit],
        )
