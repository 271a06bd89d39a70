"""
High-throughput JSONL parser.

Parses log files concurrently in worker threads and keeps each file's
entries in a TTL cache that is invalidated when the file changes.
"""

import asyncio
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from claude_usage_stats.core.cache import CacheStats, TTLCache
from claude_usage_stats.core.errors import UpstreamParseError
from claude_usage_stats.core.models import UsageEntry

from .jsonl import parse_file
from .records import find_jsonl_files, is_in_date_range

logger = logging.getLogger(__name__)

# (modification time in ns, every entry in the file)
_CachedFile = Tuple[int, Tuple[UsageEntry, ...]]


class StreamingJSONLParser:
    """Concurrent parser with a per-file result cache.

    Files are cached unfiltered and keyed by path; date bounds are applied
    on every call, so a changing end date still hits the cache.
    """
    name = "StreamingJSONLParser"

    def __init__(
        self,
        max_concurrent_files: int = 8,
        cache_ttl_seconds: float = 3600.0,
        cache: Optional[TTLCache] = None
    ):
        if max_concurrent_files <= 0:
            raise ValueError("max_concurrent_files must be > 0")

        self.max_concurrent_files = max_concurrent_files
        if cache is None:
            cache = TTLCache(ttl_seconds=cache_ttl_seconds)
        self._cache: TTLCache[str, _CachedFile] = cache

    async def parse_entries(
        self,
        directory: Path,
        start_date: Optional[datetime],
        end_date: Optional[datetime]
    ) -> List[UsageEntry]:
        """Parse every JSONL file under a directory.

        Args:
            directory: Root of the project log tree
            start_date: Earliest timestamp to include, or None
            end_date: Latest timestamp to include, or None

        Returns:
            Entries from all files, in no particular order

        Raises:
            UpstreamParseError: If any log file cannot be read
        """
        started = time.perf_counter()
        files = await asyncio.to_thread(find_jsonl_files, Path(directory))
        logger.info("Found %d JSONL files under %s", len(files), directory)

        semaphore = asyncio.Semaphore(self.max_concurrent_files)

        async def _bounded(path: Path) -> Tuple[UsageEntry, ...]:
            async with semaphore:
                return await asyncio.to_thread(self._load_file, path)

        per_file = await asyncio.gather(*(_bounded(path) for path in files))

        entries = [
            entry
            for file_entries in per_file
            for entry in file_entries
            if is_in_date_range(entry, start_date, end_date)
        ]

        elapsed = time.perf_counter() - started
        logger.info(
            "Parsed %d entries from %d files in %.2fs",
            len(entries), len(files), elapsed
        )
        return entries

    def _load_file(self, path: Path) -> Tuple[UsageEntry, ...]:
        """Return a file's entries, from cache when the file is unchanged."""
        try:
            mtime_ns = path.stat().st_mtime_ns
        except OSError as e:
            raise UpstreamParseError(str(path), str(e)) from e

        key = str(path)
        cached = self._cache.get(key)
        if cached is not None and cached[0] == mtime_ns:
            logger.debug("Using cached entries for %s", path.name)
            return cached[1]

        entries = tuple(parse_file(path, None, None))
        self._cache.put(key, (mtime_ns, entries))
        return entries

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    async def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Cleared parser cache")
