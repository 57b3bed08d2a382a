"""Base scraper interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from ..downloader.media_downloader import MediaCandidate


@dataclass
class PostExtractionResult:
    """Text and resolved media URLs of one post."""

    text: str
    image_urls: list[str] = field(default_factory=list)
    video_urls: list[str] = field(default_factory=list)
    document_urls: list[str] = field(default_factory=list)

    # Origin to send as Referer when downloading the media
    preferred_referer: Optional[str] = None

    @property
    def media_count(self) -> int:
        return len(self.image_urls) + len(self.video_urls) + len(self.document_urls)

    def media_candidates(self) -> list[MediaCandidate]:
        """All media as download candidates: images, then videos, then documents."""
        return (
            [MediaCandidate(url, "image", self.preferred_referer) for url in self.image_urls]
            + [MediaCandidate(url, "video", self.preferred_referer) for url in self.video_urls]
            + [MediaCandidate(url, "document", self.preferred_referer) for url in self.document_urls]
        )


class BaseScraper(ABC):
    """Abstract base class for post scrapers."""

    platform: str = "unknown"

    @abstractmethod
    def supports(self, url: str) -> bool:
        """
        Check if this scraper supports the given URL.

        Args:
            url: URL to check

        Returns:
            True if this scraper can handle the URL
        """
        pass

    @abstractmethod
    async def scrape(self, url: str) -> PostExtractionResult:
        """
        Extract text and media URLs from a post.

        Args:
            url: URL to scrape

        Returns:
            PostExtractionResult with extracted data
        """
        pass
