"""Structured-data (JSON-LD) strategy."""

from collections import deque
from typing import Any, Optional

from bs4 import BeautifulSoup

from ...utils.formatting import normalize_whitespace
from ..media_patterns import filter_by_kind, pathname, safe_json_loads, to_list
from ..page import PostPage
from .base import ExtractionStrategy, PartialResult


POST_SCHEMA_TYPES = {"SocialMediaPosting", "VideoObject", "Article"}

TEXT_FIELDS = ["articleBody", "description", "text", "headline", "name"]

LOW_VALUE_PHRASES = ["join linkedin", "sign in", "log in", "linkedin: log in"]


def is_low_value_text(text: Optional[str]) -> bool:
    """True for empty text and sign-in/join placeholders."""
    normalized = normalize_whitespace(text).lower()
    if not normalized:
        return True
    return any(phrase in normalized for phrase in LOW_VALUE_PHRASES)


def collect_json_ld_objects(soup: BeautifulSoup) -> list[dict]:
    """
    Parse every ld+json script and flatten nested ``@graph`` arrays
    breadth-first.
    """
    objects: list[dict] = []

    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = (script.string if script.string is not None else script.get_text()).strip()
        parsed = safe_json_loads(raw)
        if parsed is None:
            continue

        queue = deque(to_list(parsed))
        while queue:
            current = queue.popleft()
            if not isinstance(current, dict):
                continue

            objects.append(current)
            graph = current.get("@graph")
            if isinstance(graph, list):
                queue.extend(graph)

    return objects


def is_post_schema_object(obj: dict) -> bool:
    types = {str(item) for item in to_list(obj.get("@type"))}
    return bool(types & POST_SCHEMA_TYPES)


def select_primary_schema_post(objects: list[dict], canonical_url: str) -> Optional[dict]:
    """Prefer the post whose @id path equals, then contains, the canonical path."""
    posts = [obj for obj in objects if is_post_schema_object(obj)]
    if not posts:
        return None

    canonical_path = pathname(canonical_url)

    def id_path(entry: dict) -> str:
        value = entry.get("@id")
        return pathname(value) if isinstance(value, str) else ""

    if canonical_path:
        for entry in posts:
            if id_path(entry) and id_path(entry) == canonical_path:
                return entry

        for entry in posts:
            if id_path(entry) and canonical_path in id_path(entry):
                return entry

    return posts[0]


def extract_text_from_schema(primary: Optional[dict]) -> str:
    if not primary:
        return ""

    for key in TEXT_FIELDS:
        value = primary.get(key)
        if not isinstance(value, str):
            continue
        text = normalize_whitespace(value)
        if text and not is_low_value_text(text):
            return text

    return ""


class SchemaStrategy(ExtractionStrategy):
    """Reads the post from its JSON-LD SocialMediaPosting/VideoObject/Article."""

    name = "schema"

    async def extract(self, page: PostPage) -> PartialResult:
        objects = collect_json_ld_objects(page.soup)
        primary = select_primary_schema_post(objects, page.canonical_url)
        if not primary:
            return PartialResult()

        images: list[str] = []
        videos: list[str] = []
        documents: list[str] = []

        self._add_schema_candidates(images, primary.get("image"))
        self._add_schema_candidates(images, primary.get("thumbnailUrl"))

        for key in ("contentUrl", "embedUrl", "video", "associatedMedia"):
            self._add_schema_candidates(videos, primary.get(key))

        self._add_schema_candidates(documents, primary.get("url"))
        self._add_schema_candidates(documents, primary.get("encoding"))

        limit = self.config.max_media_count
        return PartialResult(
            text=extract_text_from_schema(primary),
            image_urls=filter_by_kind(images, "image")[:limit],
            video_urls=filter_by_kind(videos, "video")[:limit],
            document_urls=filter_by_kind(documents, "document")[:limit],
        )

    def _add_schema_candidates(self, urls: list[str], value: Any) -> None:
        for entry in to_list(value):
            if isinstance(entry, str):
                self._add(urls, entry)
            elif isinstance(entry, dict):
                for key in ("url", "contentUrl", "thumbnailUrl"):
                    self._add(urls, entry.get(key))
