"""Pack downloaded media into a single ZIP archive in memory."""

import io
import zipfile
from typing import Iterable, Protocol


class ArchiveFile(Protocol):
    buffer: bytes
    filename: str


def create_zip_buffer(files: Iterable[ArchiveFile]) -> bytes:
    """
    Create a deflate-compressed ZIP from ``{buffer, filename}`` items.

    Args:
        files: Items with ``buffer`` and ``filename`` attributes

    Returns:
        The ZIP archive bytes

    Raises:
        ValueError: If no files are given
    """
    files = list(files or [])
    if not files:
        raise ValueError("No files provided for ZIP creation")

    output = io.BytesIO()
    with zipfile.ZipFile(output, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for file in files:
            archive.writestr(file.filename, file.buffer)

    return output.getvalue()
