"""URL candidate handling, CDN path checks and inline script scanning."""

import html
import json
import re
from typing import Any, Callable, Iterable, Optional
from urllib.parse import urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from ..utils.formatting import normalize_whitespace


MEDIA_KINDS = ("image", "video", "document")

EXCLUDED_IMAGE_URL_HINTS = [
    "profile-displayphoto",
    "company-logo",
    "school-logo",
    "profile-framedphoto",
    "ghost-person",
]

_ESCAPED_SLASH_RE = re.compile(r"\\u002F", re.IGNORECASE)
_STYLE_URL_RE = re.compile(r"url\((['\"]?)(.*?)\1\)", re.IGNORECASE)

_EMBEDDED_PATTERNS = {
    kind: [re.compile(rf"https://[a-z0-9.-]+/dms/{kind}[^\"'\s<>,]*", re.IGNORECASE)]
    for kind in MEDIA_KINDS
}
_EMBEDDED_PATTERNS["video"] += [
    re.compile(r"https://[a-z0-9.-]+/dms/videoplayback[^\"'\s<>,]*", re.IGNORECASE),
    re.compile(r"https://[a-z0-9.-]+/playlist/vid/[^\"'\s<>,]*", re.IGNORECASE),
    re.compile(
        r"https://[a-z0-9.-]+/dms/video/[^\"'\s<>,]*\.(?:mp4|mov|webm|mpeg)(?:\?[^\"'\s<>,]*)?",
        re.IGNORECASE,
    ),
]


def _script_patterns(path: str) -> list[re.Pattern]:
    """JSON-escaped (``https:\\/\\/``) and plain forms of a CDN path."""
    escaped_path = path.replace("/", r"\\/")
    return [
        re.compile(rf"https:\\/\\/[a-z0-9.-]+\\/{escaped_path}(?:\\/|[^\"\\\s<])*", re.IGNORECASE),
        re.compile(rf"https://[a-z0-9.-]+/{path}[^\"'\s<]*", re.IGNORECASE),
    ]


_SCRIPT_PATTERNS = {
    "image": _script_patterns("dms/image"),
    "video": (
        _script_patterns("dms/video")
        + _script_patterns("dms/videoplayback")
        + _script_patterns("playlist/vid")
    ),
    "document": _script_patterns("dms/document"),
}


def pathname(url: Optional[str]) -> str:
    """Lower-cased path of a URL, '' if it has none."""
    if not url:
        return ""
    try:
        return urlparse(url).path.lower()
    except ValueError:
        return ""


def has_any_hint(value: Optional[str], hints: Iterable[str]) -> bool:
    normalized = (value or "").lower()
    return any(hint in normalized for hint in hints)


def is_likely_image_path(path: str) -> bool:
    normalized = (path or "").lower()
    if "/dms/image/" not in normalized:
        return False
    return not has_any_hint(normalized, EXCLUDED_IMAGE_URL_HINTS)


def is_likely_video_path(path: str) -> bool:
    normalized = (path or "").lower()
    return (
        "/dms/video/" in normalized
        or "/dms/videoplayback/" in normalized
        or "/playlist/vid/" in normalized
    )


def is_likely_document_path(path: str) -> bool:
    return "/dms/document/" in (path or "").lower()


PATH_CHECKS = {
    "image": is_likely_image_path,
    "video": is_likely_video_path,
    "document": is_likely_document_path,
}


def filter_by_kind(urls: Iterable[str], kind: str) -> list[str]:
    check = PATH_CHECKS[kind]
    return [url for url in urls if check(pathname(url))]


def add_candidate_url(
    urls: list[str],
    raw_value: Any,
    validator: Callable[[str], bool],
    base_url: str = "https://www.linkedin.com",
    seen: Optional[set[str]] = None,
) -> list[str]:
    """
    Resolve, validate and append URLs from an attribute value.

    Comma-separated values (``srcset``) are split and only the first token
    of each part is kept. Fragments are dropped. Returns the URLs that were
    newly appended.

    ``seen`` mirrors the contents of ``urls`` for constant-time duplicate
    checks; callers appending many URLs to one list should pass it.
    """
    added: list[str] = []
    value = normalize_whitespace(raw_value) if isinstance(raw_value, str) else ""
    if not value:
        return added

    parts = value.split(",") if "," in value else [value]
    for part in parts:
        tokens = part.strip().split()
        if not tokens:
            continue

        try:
            normalized = urldefrag(urljoin(base_url, tokens[0])).url
        except ValueError:
            continue

        if seen is not None:
            if normalized in seen:
                continue
        elif normalized in urls:
            continue

        if not validator(normalized):
            continue

        urls.append(normalized)
        if seen is not None:
            seen.add(normalized)
        added.append(normalized)

    return added


def merge_unique(*groups: Iterable[str]) -> list[str]:
    """Concatenate URL groups, keeping the first occurrence of each URL."""
    merged: dict[str, None] = {}
    for group in groups:
        merged.update(dict.fromkeys(group))
    return list(merged)


def decode_escaped_url(value: str) -> str:
    value = _ESCAPED_SLASH_RE.sub("/", str(value))
    return value.replace("\\/", "/").replace("&amp;", "&")


def extract_embedded_media_urls(raw_value: Optional[str], kind: str) -> list[str]:
    """Find CDN media URLs of one kind inside an attribute, style or markup blob."""
    source = decode_escaped_url(raw_value or "")
    if not source:
        return []

    matches: dict[str, None] = {}
    for pattern in _EMBEDDED_PATTERNS[kind]:
        for match in pattern.finditer(source):
            matches[match.group(0)] = None
    return list(matches)


def extract_style_urls(style_value: Optional[str]) -> list[str]:
    source = style_value or ""
    if "url(" not in source:
        return []
    return [match.group(2) for match in _STYLE_URL_RE.finditer(source) if match.group(2)]


def scan_scripts(
    soup: BeautifulSoup,
    kind: str,
    validator: Callable[[str], bool],
    max_length: int = 2_000_000,
    base_url: str = "https://www.linkedin.com",
    limit: Optional[int] = None,
) -> list[str]:
    """
    Regex-scan inline script bodies for CDN media URLs of one kind.

    Scripts longer than ``max_length`` characters are skipped entirely.
    With ``limit``, scanning stops once that many URLs pass the path check
    for ``kind``; the result then holds exactly the URLs a full scan would
    yield up to that point.
    """
    urls: list[str] = []
    seen: set[str] = set()
    check = PATH_CHECKS[kind]
    accepted = 0

    for script in soup.find_all("script"):
        body = script.string if script.string is not None else script.get_text()
        if not body or len(body) > max_length:
            continue

        for pattern in _SCRIPT_PATTERNS[kind]:
            for match in pattern.finditer(body):
                added = add_candidate_url(
                    urls, decode_escaped_url(match.group(0)), validator, base_url, seen
                )
                accepted += sum(1 for url in added if check(pathname(url)))
                if limit is not None and accepted >= limit:
                    return urls

    return urls


def attr(element: Tag, name: str) -> Optional[str]:
    """Attribute value as a string; multi-valued attributes are space-joined."""
    value = element.get(name)
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)


def meta_content(soup: BeautifulSoup, prop: str) -> str:
    tag = soup.select_one(f'meta[property="{prop}"]')
    return normalize_whitespace(attr(tag, "content")) if tag else ""


def safe_json_loads(value: Optional[str]) -> Any:
    """Parse JSON, retrying once with HTML entities decoded; None on failure."""
    if not value:
        return None
    for candidate in (value, html.unescape(value)):
        try:
            return json.loads(candidate)
        except (TypeError, ValueError):
            continue
    return None


def to_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]
