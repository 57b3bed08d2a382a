"""Scraper module for extracting text and media from LinkedIn posts."""

from .base import BaseScraper, PostExtractionResult
from .page import PageAcquirer, PostPage, has_auth_wall
from .linkedin import LinkedInScraper, scrape_linkedin_post

__all__ = [
    "BaseScraper",
    "PostExtractionResult",
    "PageAcquirer",
    "PostPage",
    "has_auth_wall",
    "LinkedInScraper",
    "scrape_linkedin_post",
]
