"""
Parser contract consumed by the usage service.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Protocol, runtime_checkable

from claude_usage_stats.core.cache import CacheStats
from claude_usage_stats.core.models import UsageEntry


@runtime_checkable
class UsageEntrySource(Protocol):
    """Something that turns a directory of usage logs into entries."""
    name: str

    async def parse_entries(
        self,
        directory: Path,
        start_date: Optional[datetime],
        end_date: Optional[datetime]
    ) -> List[UsageEntry]:
        """Return every entry under `directory` within the date bounds."""
        ...

    def cache_stats(self) -> CacheStats:
        ...

    async def clear_cache(self) -> None:
        ...
