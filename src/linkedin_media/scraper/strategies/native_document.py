"""Native-document strategy: resolve document viewer manifests."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ...utils.log import log_error
from ..media_patterns import filter_by_kind, merge_unique, pathname, safe_json_loads, to_list
from ..page import PostPage
from .base import PartialResult, RemoteStrategy

logger = logging.getLogger(__name__)


CONFIG_ATTRIBUTE = "data-native-document-config"
COVER_IMAGE_MARKER = "feedshare-document-cover-images_"
MIN_PAGE_WIDTH = 480
JSON_ACCEPT = "application/json,text/plain,*/*"


@dataclass
class ManifestResult:
    """What one manifest resolved to."""

    document_urls: list[str] = field(default_factory=list)
    page_urls: list[str] = field(default_factory=list)


def extract_native_document_configs(page: PostPage) -> list[dict]:
    configs = []
    for element in page.soup.select(f"[{CONFIG_ATTRIBUTE}]"):
        parsed = safe_json_loads(element.get(CONFIG_ATTRIBUTE))
        if isinstance(parsed, dict):
            configs.append(parsed)
    return configs


def pick_image_manifest_url(manifest: dict) -> Optional[str]:
    """Smallest resolution at least MIN_PAGE_WIDTH wide, else the widest one."""
    resolutions = manifest.get("perResolutions")
    if not isinstance(resolutions, list) or not resolutions:
        return None

    def width(item: Any) -> float:
        try:
            return float(item.get("width") or 0) if isinstance(item, dict) else 0.0
        except (TypeError, ValueError):
            return 0.0

    ordered = sorted(resolutions, key=width)
    preferred = next((item for item in ordered if width(item) >= MIN_PAGE_WIDTH), None)
    if isinstance(preferred, dict) and preferred.get("imageManifestUrl"):
        return preferred["imageManifestUrl"]

    widest = ordered[-1]
    return widest.get("imageManifestUrl") if isinstance(widest, dict) else None


class NativeDocumentStrategy(RemoteStrategy):
    """
    Resolves ``data-native-document-config`` payloads into page images and
    document downloads.

    Each config yields cover-page images, an optional transcribed document
    URL, and a manifest URL. Manifests are fetched from the media CDN and
    may point at a PDF and at an image manifest listing every page. When
    any manifest lists pages, cover images are dropped in favour of them.
    """

    name = "native_document"

    async def extract(self, page: PostPage) -> PartialResult:
        configs = extract_native_document_configs(page)
        if not configs:
            return PartialResult()

        images: list[str] = []
        documents: list[str] = []
        manifests: list[str] = []

        for config in configs:
            doc = config.get("doc") if isinstance(config.get("doc"), dict) else {}
            for cover in to_list(doc.get("coverPages")):
                if isinstance(cover, dict) and isinstance(cover.get("config"), dict):
                    self._add(images, cover["config"].get("src"))

            self._add(documents, doc.get("transcribedDocumentUrl"))

            manifest_url = self._pick_manifest_url(doc)
            if manifest_url and manifest_url not in manifests:
                manifests.append(manifest_url)

        referers = self.policy.referer_candidates(page.preferred_referer)
        manifests = manifests[: self.config.max_embed_fetches]
        resolved = await self._gather_limited(
            lambda url: self._resolve_manifest(url, referers), manifests
        )

        documents = merge_unique(documents, *(result.document_urls for result in resolved))
        images = merge_unique(images, *(result.page_urls for result in resolved))
        has_full_pages = any(result.page_urls for result in resolved)

        if has_full_pages:
            images = [url for url in images if COVER_IMAGE_MARKER not in pathname(url)]

        limit = self.config.max_media_count
        return PartialResult(
            image_urls=filter_by_kind(images, "image")[:limit],
            document_urls=filter_by_kind(documents, "document")[:limit],
        )

    def _pick_manifest_url(self, doc: dict) -> Optional[str]:
        for candidate in (doc.get("manifestUrl"), doc.get("url")):
            if isinstance(candidate, str) and self.policy.is_allowed_media_url(candidate):
                return candidate
        return None

    async def _resolve_manifest(self, manifest_url: str, referers: list[str]) -> ManifestResult:
        result = ManifestResult()
        try:
            manifest = await self._fetch_media_json(manifest_url, referers)
            self._add(result.document_urls, manifest.get("transcribedDocumentUrl"))
            self._add(result.document_urls, manifest.get("downloadUrl"))

            image_manifest_url = pick_image_manifest_url(manifest)
            if not image_manifest_url:
                return result

            image_manifest = await self._fetch_media_json(image_manifest_url, referers)
            seen: set[str] = set()
            for page_url in to_list(image_manifest.get("pages")):
                self._add(result.page_urls, page_url, seen)
        except Exception as e:
            log_error(logger, "Failed to parse native document manifest", e, manifest_url=manifest_url)

        return result

    async def _fetch_media_json(self, url: str, referers: list[str]) -> dict:
        """Fetch a JSON object, trying each referer until one works."""
        last_error: Optional[Exception] = None

        for referer in referers:
            try:
                response = await self._fetch_media_host(url, referer, accept=JSON_ACCEPT)
            except Exception as e:
                last_error = e
                continue

            if not response.ok:
                last_error = RuntimeError(f"Media JSON request returned {response.status}")
                continue

            payload = safe_json_loads(response.text())
            if isinstance(payload, dict):
                return payload

            last_error = ValueError("Media JSON response is not valid JSON")

        raise last_error or RuntimeError("Failed to fetch media JSON")
