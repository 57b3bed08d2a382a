"""Allow-list checks for post URLs and media CDN URLs."""

import re
from typing import Optional
from urllib.parse import ParseResult, urlparse

from ..config import ExtractorConfig
from ..errors import ErrorCode, ExtractionError


_FIRST_URL_RE = re.compile(r"https?://[^\s<>\"'`]+", re.IGNORECASE)
_TRAILING_PUNCTUATION_RE = re.compile(r"[),.;!?]+$")


def parse_url(value) -> Optional[ParseResult]:
    """Parse an absolute URL, returning None when it has no scheme or host."""
    if value is None:
        return None
    try:
        parsed = urlparse(str(value).strip())
        if not parsed.scheme or not parsed.hostname:
            return None
        # Raises ValueError on a malformed port
        parsed.port
    except ValueError:
        return None
    return parsed


def extract_first_url(text: Optional[str]) -> Optional[str]:
    """Return the first http(s) URL in free text, minus trailing punctuation."""
    if not text or not isinstance(text, str):
        return None

    match = _FIRST_URL_RE.search(text)
    if not match:
        return None

    return _TRAILING_PUNCTUATION_RE.sub("", match.group(0))


class UrlPolicy:
    """Decides which URLs may be fetched at all."""

    def __init__(self, config: Optional[ExtractorConfig] = None):
        self.config = config or ExtractorConfig()
        suffix = re.escape(self.config.media_host_suffix.lower())
        self._media_host_re = re.compile(rf"^[a-z0-9-]+\.{suffix}$", re.IGNORECASE)

    def is_valid_post_url(self, url) -> bool:
        """
        Check that a URL points at a post on the platform.

        Requires https, the exact post host, and one of the post path
        prefixes.
        """
        parsed = parse_url(url)
        if not parsed:
            return False

        if parsed.scheme.lower() != "https":
            return False

        if parsed.hostname.lower() != self.config.post_host.lower():
            return False

        return any(parsed.path.startswith(prefix) for prefix in self.config.post_path_prefixes)

    def assert_valid_post_url(self, url) -> None:
        if not self.is_valid_post_url(url):
            raise ExtractionError(ErrorCode.INVALID_URL, "Invalid LinkedIn post URL")

    def is_allowed_media_host(self, hostname: Optional[str]) -> bool:
        """
        Check that a hostname is a single-label subdomain of the media CDN.

        Both the suffix test and the character pattern must pass, so
        look-alikes such as ``media.licdn.com.attacker.net`` are rejected.
        """
        if not hostname:
            return False

        normalized = hostname.lower()
        if not normalized.endswith("." + self.config.media_host_suffix.lower()):
            return False

        return bool(self._media_host_re.match(normalized))

    def is_allowed_media_url(self, url) -> bool:
        parsed = parse_url(url)
        if not parsed or parsed.scheme.lower() != "https":
            return False
        return self.is_allowed_media_host(parsed.hostname)

    def normalize_referer(self, referer) -> Optional[str]:
        """Reduce a referer to ``https://host/``; None if not https."""
        parsed = parse_url(referer)
        if not parsed or parsed.scheme.lower() != "https":
            return None
        host = parsed.hostname
        if parsed.port:
            host = f"{host}:{parsed.port}"
        return f"https://{host}/"

    def referer_candidates(self, preferred: Optional[str] = None) -> list[str]:
        """Preferred referer first, then the configured defaults, deduplicated."""
        candidates = []
        for value in (preferred, *self.config.default_referers):
            normalized = self.normalize_referer(value)
            if normalized and normalized not in candidates:
                candidates.append(normalized)
        return candidates


# Convenience functions
_default_policy = UrlPolicy()


def is_valid_post_url(url) -> bool:
    return _default_policy.is_valid_post_url(url)


def is_allowed_media_host(hostname: Optional[str]) -> bool:
    return _default_policy.is_allowed_media_host(hostname)


def is_allowed_media_url(url) -> bool:
    return _default_policy.is_allowed_media_url(url)
