"""Error logging with contextual metadata."""

import logging
from typing import Any


def log_error(logger: logging.Logger, message: str, error: BaseException, **meta: Any) -> None:
    """
    Log a recoverable failure together with the context it happened in.

    The metadata is rendered into the message and also attached as
    ``record.meta`` for handlers that want it structured.
    """
    context = " ".join(f"{key}={value}" for key, value in meta.items())
    logger.error(
        "%s: %s%s",
        message,
        str(error) or type(error).__name__,
        f" ({context})" if context else "",
        extra={"meta": meta, "error_type": type(error).__name__},
    )
