"""Inline-script strategy: CDN media URLs embedded in page scripts."""

from ..media_patterns import filter_by_kind
from ..page import PostPage
from .base import ExtractionStrategy, PartialResult
from .dom import collect_document_candidates


class ScriptStrategy(ExtractionStrategy):
    """
    Scans inline ``<script>`` bodies for video and document URLs.

    Videos are always contributed. Documents are only taken from scripts
    when no document element exists on the page.
    """

    name = "script"

    async def extract(self, page: PostPage) -> PartialResult:
        limit = self.config.max_media_count
        videos = filter_by_kind(page.script_media_urls("video"), "video")

        documents: list[str] = []
        if not collect_document_candidates(page, self._add):
            documents = filter_by_kind(page.script_media_urls("document"), "document")

        return PartialResult(video_urls=videos[:limit], document_urls=documents[:limit])
