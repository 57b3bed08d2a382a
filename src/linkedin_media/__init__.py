"""Extract text and media from public LinkedIn posts."""

from .config import ExtractorConfig
from .errors import ErrorCode, ExtractionError
from .scraper import LinkedInScraper, PostExtractionResult, scrape_linkedin_post
from .downloader import MediaDownloader, download_media

__version__ = "0.1.0"

__all__ = [
    "ExtractorConfig",
    "ErrorCode",
    "ExtractionError",
    "LinkedInScraper",
    "PostExtractionResult",
    "scrape_linkedin_post",
    "MediaDownloader",
    "download_media",
]
