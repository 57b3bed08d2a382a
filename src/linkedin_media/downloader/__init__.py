"""Downloader module for media files."""

from .media_downloader import (
    DownloadedMedia,
    MediaCandidate,
    MediaDownloader,
    MediaDownloadError,
    download_media,
)
from .classify import infer_media_type, media_filename
from .archive import create_zip_buffer

__all__ = [
    "DownloadedMedia",
    "MediaCandidate",
    "MediaDownloader",
    "MediaDownloadError",
    "download_media",
    "infer_media_type",
    "media_filename",
    "create_zip_buffer",
]
