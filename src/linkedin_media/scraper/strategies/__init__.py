"""Extraction strategies, run in order and merged into one result."""

from typing import Optional

from ...config import ExtractorConfig
from ...fetcher.guarded import GuardedFetcher
from .base import ExtractionStrategy, PartialResult, RemoteStrategy, merge_results
from .schema import SchemaStrategy
from .dom import DomStrategy
from .script import ScriptStrategy
from .native_document import NativeDocumentStrategy
from .embed import EmbedStrategy


def default_strategies(
    config: Optional[ExtractorConfig] = None,
    fetcher: Optional[GuardedFetcher] = None,
) -> list[ExtractionStrategy]:
    """The fixed strategy chain, highest-priority text source first."""
    return [
        SchemaStrategy(config),
        DomStrategy(config),
        ScriptStrategy(config),
        NativeDocumentStrategy(config, fetcher),
        EmbedStrategy(config, fetcher),
    ]


__all__ = [
    "ExtractionStrategy",
    "PartialResult",
    "RemoteStrategy",
    "merge_results",
    "SchemaStrategy",
    "DomStrategy",
    "ScriptStrategy",
    "NativeDocumentStrategy",
    "EmbedStrategy",
    "default_strategies",
]
