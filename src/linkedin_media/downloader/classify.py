"""Media type inference and output filenames."""

import re
from typing import Optional
from urllib.parse import urlparse

MEDIA_TYPES = ("image", "video", "document")

MIME_TO_EXTENSION = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
    "image/heif": "heif",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
    "video/mpeg": "mpeg",
    "application/pdf": "pdf",
    "application/octet-stream": "bin",
}

GENERIC_MIME_TYPES = ("", "application/octet-stream")

_URL_EXTENSION_RE = re.compile(r"\.([a-z0-9]{2,5})$", re.IGNORECASE)
_VIDEO_EXTENSION_RE = re.compile(r"\.(mp4|mov|webm|mpeg)$", re.IGNORECASE)


def pathname(url: str) -> str:
    try:
        return urlparse(url or "").path.lower()
    except ValueError:
        return ""


def normalize_mime(content_type: Optional[str]) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def infer_media_type(requested_type: Optional[str], mime_type: Optional[str], source_url: str) -> Optional[str]:
    """
    Classify a downloaded body as image, video or document.

    The response MIME type decides first; HTML is never media. URL path
    patterns come next, and the caller's hint is used only when the MIME
    type is empty or generic binary. Returns None when undecidable.
    """
    mime = normalize_mime(mime_type)
    path = pathname(source_url)

    if mime.startswith("text/html"):
        return None

    if mime.startswith("image/"):
        return "image"

    if mime.startswith("video/"):
        return "video"

    if mime == "application/pdf":
        return "document"

    if "/dms/document/" in path or path.endswith(".pdf"):
        return "document"

    if (
        "/dms/video/" in path
        or "/dms/videoplayback/" in path
        or "/playlist/vid/" in path
        or _VIDEO_EXTENSION_RE.search(path)
    ):
        return "video"

    if "/dms/image/" in path:
        return "image"

    if mime in GENERIC_MIME_TYPES and requested_type in MEDIA_TYPES:
        return requested_type

    return None


def extension_from_url(url: str) -> Optional[str]:
    match = _URL_EXTENSION_RE.search(pathname(url))
    return match.group(1).lower() if match else None


def media_filename(index: int, media_type: str, mime_type: str, source_url: str) -> str:
    """``linkedin-<type>-<n>.<ext>``, n being 1-based."""
    ext = MIME_TO_EXTENSION.get(normalize_mime(mime_type)) or extension_from_url(source_url) or "jpg"
    return f"linkedin-{media_type}-{index + 1}.{ext}"
