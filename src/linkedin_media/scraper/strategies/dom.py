"""DOM-selector strategy: commentary text and media elements."""

import re
from typing import Callable, Optional

from bs4 import Tag

from ...utils.formatting import normalize_whitespace
from ..media_patterns import (
    EXCLUDED_IMAGE_URL_HINTS,
    attr,
    extract_embedded_media_urls,
    filter_by_kind,
    has_any_hint,
    meta_content,
    pathname,
)
from ..page import PostPage
from .base import ExtractionStrategy, PartialResult
from .schema import is_low_value_text


MAIN_COMMENTARY_SELECTOR = '[data-test-id="main-feed-activity-card__commentary"]'

PRIMARY_TEXT_SELECTORS = [
    ".attributed-text-segment-list__content",
    ".update-components-update-v2__commentary",
]

POST_MEDIA_CONTAINER_SELECTOR = ", ".join([
    ".update-components-image",
    ".update-components-image__container",
    ".update-components-carousel",
    ".update-components-carousel__container",
    ".update-components-document",
    ".update-components-document__container",
    ".update-components-video",
    ".update-components-linkedin-video",
    ".feed-shared-update-v2__content",
])

POST_IMAGE_SELECTORS = [
    ".update-components-image__container img",
    ".update-components-image img",
    ".update-components-carousel__container img",
    ".update-components-document__container img",
    ".update-components-article__image img",
    "img.carousel-slide__image",
    ".feed-shared-update-v2__content img[data-delayed-url]",
]

IMAGE_ATTRIBUTES = ["src", "srcset", "data-delayed-url", "data-ghost-url"]

POST_VIDEO_SELECTORS = [
    ".update-components-video video[src]",
    ".update-components-video video source[src]",
    ".update-components-linkedin-video video[src]",
    ".update-components-linkedin-video video source[src]",
    ".update-components-linkedin-video__container video[src]",
    ".update-components-linkedin-video__container video source[src]",
    '.update-components-linkedin-video__container video[id*="_html5_api"][src]',
    ".update-components-linkedin-video__container .vjs-tech[src]",
    ".video-s-loader__video-container video[src]",
    ".video-s-loader__video-container video source[src]",
    "[data-player-id][data-sources]",
    ".feed-shared-update-v2__content video[src]",
    ".feed-shared-update-v2__content video source[src]",
    'a[href*="/dms/video/"]',
    'a[href*="/dms/videoplayback/"]',
]

VIDEO_ATTRIBUTES = [
    "src",
    "href",
    "data-delayed-url",
    "data-mp4-source-url",
    "data-video-url",
    "data-source-url",
    "data-manifest-url",
    "data-sources",
    "data-player-config",
    "style",
]

POST_DOCUMENT_SELECTORS = [
    ".update-components-document__container a[href]",
    ".update-components-document__container [data-document-url]",
    'a[href*="/dms/document/"]',
    '[data-document-url*="/dms/document/"]',
]

DOCUMENT_ATTRIBUTES = ["href", "data-document-url", "src"]

INCLUDED_IMAGE_CLASS_HINTS = [
    "update-components-image",
    "update-components-carousel",
    "update-components-document",
    "carousel-slide__image",
    "feed-shared-image",
]

EXCLUDED_IMAGE_CLASS_HINTS = [
    "feed-shared-actor__avatar",
    "entityphoto",
    "presence-entity__image",
    "ivm-view-attr__img--centered",
    "global-nav",
    "org-top-card-primary-content__logo",
]

_LEADING_INT_RE = re.compile(r"^\s*(\d+)")


def parse_dimension(value: Optional[str]) -> Optional[int]:
    """Leading integer of a width/height attribute; None if absent or <= 0."""
    if not value:
        return None
    match = _LEADING_INT_RE.match(value)
    if not match:
        return None
    parsed = int(match.group(1))
    return parsed if parsed > 0 else None


def _closest_with_class(element: Tag) -> Optional[Tag]:
    node = element
    while isinstance(node, Tag):
        if node.get("class"):
            return node
        node = node.parent
    return None


def _class_blob(element: Tag) -> str:
    candidates = [element, element.parent, _closest_with_class(element)]
    parts = [attr(node, "class") for node in candidates if isinstance(node, Tag)]
    return " ".join(part for part in parts if part).lower()


def is_likely_post_image_element(element: Tag, url: str, min_dimension: int = 140) -> bool:
    """
    Decide whether an <img> belongs to the post body rather than chrome.

    Avatars and logos are rejected by URL and class hints. The element must
    sit in a known media container or carry a strong class signal, and
    small images need the strong class signal.
    """
    path = pathname(url)
    if "/dms/image/" not in path:
        return False

    if has_any_hint(path, EXCLUDED_IMAGE_URL_HINTS):
        return False

    class_blob = _class_blob(element)
    if has_any_hint(class_blob, EXCLUDED_IMAGE_CLASS_HINTS):
        return False

    in_known_container = element.css.closest(POST_MEDIA_CONTAINER_SELECTOR) is not None
    strong_class_signal = has_any_hint(class_blob, INCLUDED_IMAGE_CLASS_HINTS)

    if not in_known_container and not strong_class_signal:
        return False

    width = parse_dimension(attr(element, "width"))
    height = parse_dimension(attr(element, "height"))
    too_small = (width is not None and width < min_dimension) or (
        height is not None and height < min_dimension
    )

    return not too_small or strong_class_signal


def extract_post_text(page: PostPage) -> str:
    """Commentary text from the DOM, falling back to og:description/og:title."""
    soup = page.soup

    for selector in [MAIN_COMMENTARY_SELECTOR, *PRIMARY_TEXT_SELECTORS]:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = normalize_whitespace(element.get_text())
        if text and not is_low_value_text(text):
            return text

    fallback = meta_content(soup, "og:description") or meta_content(soup, "og:title")
    if is_low_value_text(fallback):
        return ""
    return fallback


def collect_document_candidates(page: PostPage, add: Callable[..., list[str]]) -> list[str]:
    """Allowed media URLs found on document elements, before path filtering."""
    documents: list[str] = []
    seen: set[str] = set()
    for selector in POST_DOCUMENT_SELECTORS:
        for element in page.soup.select(selector):
            for name in DOCUMENT_ATTRIBUTES:
                add(documents, attr(element, name), seen)
    return documents


class DomStrategy(ExtractionStrategy):
    """Reads commentary text and media from known LinkedIn markup."""

    name = "dom"

    async def extract(self, page: PostPage) -> PartialResult:
        limit = self.config.max_media_count
        return PartialResult(
            text=extract_post_text(page),
            image_urls=self._image_urls(page)[:limit],
            video_urls=filter_by_kind(self._video_urls(page), "video")[:limit],
            document_urls=filter_by_kind(collect_document_candidates(page, self._add), "document")[:limit],
        )

    def _image_urls(self, page: PostPage) -> list[str]:
        images: list[str] = []
        seen: set[str] = set()
        for selector in POST_IMAGE_SELECTORS:
            for element in page.soup.select(selector):
                for name in IMAGE_ATTRIBUTES:
                    added = self._add(images, attr(element, name), seen)
                    if not added:
                        continue
                    # Rejected URLs stay eligible for a later element
                    del images[len(images) - len(added):]
                    for url in added:
                        if is_likely_post_image_element(element, url, self.config.min_image_dimension):
                            images.append(url)
                        else:
                            seen.discard(url)
        return images

    def _video_urls(self, page: PostPage) -> list[str]:
        videos: list[str] = []
        seen: set[str] = set()
        for selector in POST_VIDEO_SELECTORS:
            for element in page.soup.select(selector):
                for name in VIDEO_ATTRIBUTES:
                    value = attr(element, name)
                    self._add(videos, value, seen)
                    for match in extract_embedded_media_urls(value, "video"):
                        self._add(videos, match, seen)

                for match in extract_embedded_media_urls(element.decode_contents(), "video"):
                    self._add(videos, match, seen)

        # Script-embedded videos are contributed by ScriptStrategy, but they
        # still count when deciding whether to fall back to og:video
        if not videos and not page.script_media_urls("video"):
            self._add(videos, meta_content(page.soup, "og:video"), seen)
            self._add(videos, meta_content(page.soup, "og:video:secure_url"), seen)

        return videos
