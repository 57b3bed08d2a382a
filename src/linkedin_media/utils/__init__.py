from .formatting import human_readable_size, normalize_whitespace, trim_text
from .log import log_error

__all__ = [
    "human_readable_size",
    "normalize_whitespace",
    "trim_text",
    "log_error",
]
