"""Typed failures raised by the extraction pipeline."""

from enum import Enum


class ErrorCode(str, Enum):
    """Top-level failure categories surfaced to callers."""

    INVALID_URL = "invalid_url"
    PRIVATE_OR_PROTECTED = "private_or_protected"
    SCRAPE_FAILED = "scrape_failed"
    TEXT_NOT_FOUND = "text_not_found"


class ExtractionError(RuntimeError):
    """Raised when a post cannot be extracted."""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code

    def __repr__(self) -> str:
        return f"ExtractionError({self.code.value!r}, {str(self)!r})"


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class FetchError(RuntimeError):
    """Base class for guarded fetch policy violations."""


class InvalidFetchUrlError(FetchError):
    """The URL could not be parsed."""


class InsecureSchemeError(FetchError):
    """A hop used a scheme other than https."""


class BlockedHostError(FetchError):
    """A hop (initial or redirected) targeted a host outside the allow-list."""

    def __init__(self, hostname: str, redirect: bool = False):
        prefix = "Blocked redirect hostname" if redirect else "Blocked hostname"
        super().__init__(f"{prefix}: {hostname}")
        self.hostname = hostname


class MissingLocationError(FetchError):
    """A redirect response carried no Location header."""


class TooManyRedirectsError(FetchError):
    """The redirect hop budget was exhausted."""


class FetchTimeoutError(FetchError):
    """The request did not complete within its timeout and was cancelled."""
