import re

_WHITESPACE_RE = re.compile(r"\s+")


def human_readable_size(size_in_bytes: int) -> str:
    """Converts bytes to a human readable string (e.g. 10.5 MB)."""
    if size_in_bytes is None:
        return "Unknown"

    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size_in_bytes < 1024.0:
            return f"{size_in_bytes:.2f} {unit}"
        size_in_bytes /= 1024.0
    return f"{size_in_bytes:.2f} PB"


def normalize_whitespace(value) -> str:
    """Collapse runs of whitespace to single spaces; None becomes ''."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        value = " ".join(str(item) for item in value)
    return _WHITESPACE_RE.sub(" ", str(value)).strip()


def trim_text(text: str, max_length: int = 3900) -> str:
    """Cut text to max_length characters, ending with an ellipsis when cut."""
    text = text or ""
    if len(text) <= max_length:
        return text
    return text[:max(max_length - 1, 0)] + "…"
