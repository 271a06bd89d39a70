"""
Usage log parsers.

Parsers discover JSONL files under a Claude projects directory and turn
their lines into usage entries.
"""

from claude_usage_stats.config.loader import ParserKind, ParserSettings

from .base import UsageEntrySource
from .jsonl import JSONLParser
from .streaming import StreamingJSONLParser


def create_parser(settings: ParserSettings) -> UsageEntrySource:
    """Build the parser selected by the settings."""
    if settings.kind == ParserKind.LEGACY:
        return JSONLParser()
    return StreamingJSONLParser(
        max_concurrent_files=settings.max_concurrent_files,
        cache_ttl_seconds=settings.cache_ttl_seconds
    )


__all__ = [
    "JSONLParser",
    "StreamingJSONLParser",
    "UsageEntrySource",
    "create_parser",
]
