"""
Sequential JSONL parser.

Reads every log file in turn with no caching.
"""

import asyncio
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from claude_usage_stats.core.cache import CacheStats
from claude_usage_stats.core.errors import UpstreamParseError
from claude_usage_stats.core.models import UsageEntry

from .records import extract_project_path, find_jsonl_files, is_in_date_range, parse_line

logger = logging.getLogger(__name__)


def parse_file(
    path: Path,
    start_date: Optional[datetime],
    end_date: Optional[datetime]
) -> List[UsageEntry]:
    """Parse one JSONL file into entries within the date bounds.

    Raises:
        UpstreamParseError: If the file cannot be read
    """
    project_path = extract_project_path(path)
    entries = []
    total_lines = 0
    skipped = 0

    try:
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            for line in f:
                if not line.strip():
                    continue
                total_lines += 1
                entry = parse_line(line, project_path)
                if entry is None or not is_in_date_range(entry, start_date, end_date):
                    skipped += 1
                    continue
                entries.append(entry)
    except OSError as e:
        raise UpstreamParseError(str(path), str(e)) from e

    logger.debug(
        "%s: %d lines, %d entries, %d skipped",
        path.name, total_lines, len(entries), skipped
    )
    return entries


class JSONLParser:
    """Legacy parser: one file after another, nothing cached."""
    name = "JSONLParser"

    async def parse_entries(
        self,
        directory: Path,
        start_date: Optional[datetime],
        end_date: Optional[datetime]
    ) -> List[UsageEntry]:
        return await asyncio.to_thread(self._parse_all, Path(directory), start_date, end_date)

    def _parse_all(
        self,
        directory: Path,
        start_date: Optional[datetime],
        end_date: Optional[datetime]
    ) -> List[UsageEntry]:
        started = time.perf_counter()
        files = find_jsonl_files(directory)

        entries: List[UsageEntry] = []
        for path in files:
            entries.extend(parse_file(path, start_date, end_date))

        logger.info(
            "Parsed %d entries from %d files in %.2fs",
            len(entries), len(files), time.perf_counter() - started
        )
        return entries

    def cache_stats(self) -> CacheStats:
        return CacheStats(hits=0, misses=0, size=0)

    async def clear_cache(self) -> None:
        return None
