"""Fetcher module for allow-listed HTTP requests."""

from .guarded import (
    AllowedHosts,
    FetchResponse,
    GuardedFetcher,
    REDIRECT_STATUSES,
    allowed_host_set,
    is_hostname_allowed,
)
from .retry import with_retries

__all__ = [
    "AllowedHosts",
    "FetchResponse",
    "GuardedFetcher",
    "REDIRECT_STATUSES",
    "allowed_host_set",
    "is_hostname_allowed",
    "with_retries",
]
