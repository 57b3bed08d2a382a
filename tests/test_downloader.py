"""Tests for the downloader module."""

import logging

import pytest

from linkedin_media.config import ExtractorConfig
from linkedin_media.downloader import (
    MediaCandidate,
    MediaDownloader,
    infer_media_type,
    media_filename,
)
from linkedin_media.fetcher import FetchResponse

from conftest import StubFetcher


CDN = "https://media.licdn.com"
IMAGE = f"{CDN}/dms/image/v2/I1/feedshare-shrink_800/0/1"
JPEG = {"Content-Type": "image/jpeg"}


class TestInferMediaType:
    """Tests for infer_media_type."""

    def test_mime_wins_over_path(self):
        assert infer_media_type("image", "video/mp4", IMAGE) == "video"

    def test_html_rejected(self):
        assert infer_media_type("image", "text/html; charset=utf-8", IMAGE) is None

    def test_pdf(self):
        assert infer_media_type("image", "application/pdf", f"{CDN}/x") == "document"

    def test_path_fallback(self):
        assert infer_media_type("image", "application/octet-stream", f"{CDN}/dms/document/x") == "document"
        assert infer_media_type("image", "", f"{CDN}/dms/videoplayback/x") == "video"
        assert infer_media_type("video", "", f"{CDN}/files/clip.MP4") == "video"
        assert infer_media_type("video", "", IMAGE) == "image"

    def test_hint_only_for_generic_mime(self):
        assert infer_media_type("document", "application/octet-stream", f"{CDN}/files/x") == "document"
        assert infer_media_type("document", "application/zip", f"{CDN}/files/x") is None
        assert infer_media_type("sticker", "", f"{CDN}/files/x") is None


class TestMediaFilename:
    """Tests for media_filename."""

    def test_from_mime(self):
        assert media_filename(0, "image", "image/png", IMAGE) == "linkedin-image-1.png"

    def test_from_url_extension(self):
        assert media_filename(2, "video", "", f"{CDN}/files/clip.webm") == "linkedin-video-3.webm"

    def test_default(self):
        assert media_filename(0, "image", "", IMAGE) == "linkedin-image-1.jpg"


class TestPrepare:
    """Tests for MediaDownloader.prepare."""

    def test_dedupe_and_allow_list(self):
        downloader = MediaDownloader(StubFetcher())
        prepared = downloader.prepare([
            MediaCandidate(IMAGE),
            MediaCandidate(IMAGE, "video"),
            MediaCandidate("https://evil.example.net/dms/image/x"),
            MediaCandidate("http://media.licdn.com/dms/image/x"),
        ], referer="https://www.linkedin.com/posts/x")

        assert [c.url for c in prepared] == [IMAGE]
        assert prepared[0].referer == "https://www.linkedin.com/"

    def test_cap(self):
        downloader = MediaDownloader(StubFetcher(), ExtractorConfig(max_download_count=2))
        prepared = downloader.prepare([MediaCandidate(f"{IMAGE}?n={n}") for n in range(5)])
        assert len(prepared) == 2


class TestMediaDownloader:
    """Tests for MediaDownloader.download."""

    @pytest.fixture
    def downloader(self, fetcher, config):
        return MediaDownloader(fetcher, config)

    @pytest.mark.asyncio
    async def test_download_image(self, downloader, fetcher):
        fetcher.route(IMAGE, body=b"\xff\xd8jpeg", headers=JPEG)

        media = await downloader.download([MediaCandidate(IMAGE)], referer="https://www.linkedin.com/")

        assert len(media) == 1
        assert media[0].media_type == "image"
        assert media[0].mime_type == "image/jpeg"
        assert media[0].filename == "linkedin-image-1.jpg"
        assert media[0].size == 6
        assert fetcher.calls[0][1]["Referer"] == "https://www.linkedin.com/"

    @pytest.mark.asyncio
    async def test_content_type_overrides_hint(self, downloader, fetcher):
        fetcher.route(IMAGE, body=b"mp4", headers={"Content-Type": "video/mp4"})

        media = await downloader.download([MediaCandidate(IMAGE, "image")])

        assert media[0].media_type == "video"
        assert media[0].filename == "linkedin-video-1.mp4"

    @pytest.mark.asyncio
    async def test_html_dropped(self, downloader, fetcher, caplog):
        fetcher.route(IMAGE, body=b"<html>login</html>", headers={"Content-Type": "text/html"})

        with caplog.at_level(logging.ERROR):
            media = await downloader.download([MediaCandidate(IMAGE)])

        assert media == []
        assert "Skipping media after download failure" in caplog.text

    @pytest.mark.asyncio
    async def test_empty_body_dropped(self, downloader, fetcher):
        fetcher.route(IMAGE, body=b"", headers=JPEG)
        assert await downloader.download([MediaCandidate(IMAGE)]) == []

    @pytest.mark.asyncio
    async def test_one_failure_keeps_batch(self, downloader, fetcher):
        second = f"{IMAGE}?n=2"
        fetcher.route(IMAGE, 500)
        fetcher.route(second, body=b"png", headers={"Content-Type": "image/png"})

        media = await downloader.download([MediaCandidate(IMAGE), MediaCandidate(second)])

        assert [m.url for m in media] == [second]
        assert media[0].filename == "linkedin-image-2.png"

    @pytest.mark.asyncio
    async def test_referer_fallback_on_auth_failure(self, downloader, fetcher):
        def by_referer(headers):
            if headers["Referer"] == "https://ae.linkedin.com/":
                return FetchResponse(IMAGE, 200, JPEG, b"jpeg")
            return FetchResponse(IMAGE, 403)

        fetcher.route_handler(IMAGE, by_referer)

        media = await downloader.download([MediaCandidate(IMAGE)])

        assert len(media) == 1
        assert [headers["Referer"] for headers in fetcher.calls_to(IMAGE)] == [
            "https://www.linkedin.com/",
            "https://ae.linkedin.com/",
        ]

    @pytest.mark.asyncio
    async def test_other_status_is_final(self, downloader, fetcher):
        fetcher.route(IMAGE, 404)

        assert await downloader.download([MediaCandidate(IMAGE)]) == []
        assert len(fetcher.calls_to(IMAGE)) == 1

    @pytest.mark.asyncio
    async def test_redirect_off_cdn_dropped(self, downloader, fetcher):
        fetcher.route(IMAGE, 302, headers={"Location": "https://evil.example.net/x.jpg"})

        assert await downloader.download([MediaCandidate(IMAGE)]) == []
        assert [url for url, _ in fetcher.calls] == [IMAGE]

    @pytest.mark.asyncio
    async def test_concurrency_and_max_count(self):
        config = ExtractorConfig(fetch_timeout=1.0, max_download_count=10)
        fetcher = StubFetcher()
        urls = [f"{IMAGE}?n={n}" for n in range(11)]
        for url in urls:
            fetcher.route(url, body=b"jpeg", headers=JPEG, delay=0.02)

        media = await MediaDownloader(fetcher, config).download([MediaCandidate(url) for url in urls])

        assert [m.url for m in media] == urls[:10]
        assert len(fetcher.calls) == 10
        assert 1 < fetcher.max_in_flight <= 3
