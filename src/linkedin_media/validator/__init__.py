"""Validator module for deciding which URLs may be fetched."""

from .url_policy import (
    UrlPolicy,
    parse_url,
    extract_first_url,
    is_valid_post_url,
    is_allowed_media_host,
    is_allowed_media_url,
)

__all__ = [
    "UrlPolicy",
    "parse_url",
    "extract_first_url",
    "is_valid_post_url",
    "is_allowed_media_host",
    "is_allowed_media_url",
]
