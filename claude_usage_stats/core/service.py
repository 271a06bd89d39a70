"""
Usage report orchestration.

The service checks the report cache, fetches raw entries from a parser,
runs the dedup/price/aggregate pipeline and caches the finished report.

Pipeline for a cache miss:
1. Resolve and check the data directory
2. Parse entries between the range start and now
3. Apply the optional project path filter
4. Build statistics and store them in the cache
"""

import logging
import os
import time
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from claude_usage_stats.config.loader import Settings
from claude_usage_stats.config.paths import PROJECTS_SUBDIRECTORY, DataDirectoryResolver
from claude_usage_stats.parsing import create_parser
from claude_usage_stats.parsing.base import UsageEntrySource

from .aggregation import build_statistics
from .cache import CacheMetadata, TTLCache
from .errors import DataNotFound, FileAccessDenied, UsageStatisticsError
from .models import DateRange, ProjectUsage, SessionSortOrder, UsageStatistics
from .pricing import CostResolver, calculate_cost

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 1800.0
DEFAULT_STALE_AFTER_SECONDS = 300.0

CacheKey = Tuple[str, Optional[str]]


class LoadState(Enum):
    """Progress of the most recent report request."""
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


@dataclass(frozen=True)
class ServiceDiagnostics:
    """Snapshot of the last report computation."""
    parser_kind: str
    parse_time_seconds: float = 0.0
    cache_hit_rate: float = 0.0
    cache_size: int = 0
    entries_processed: int = 0
    state: LoadState = LoadState.IDLE
    last_error: Optional[str] = None
    last_updated: Optional[datetime] = None


@dataclass(frozen=True)
class StatisticsResult:
    """Outcome of a report request: statistics or a typed error."""
    state: LoadState
    statistics: Optional[UsageStatistics] = None
    error: Optional[UsageStatisticsError] = None

    @property
    def ok(self) -> bool:
        return self.state == LoadState.IDLE and self.statistics is not None

    @property
    def message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _is_readable(path: Path) -> bool:
    return os.access(path, os.R_OK)


def sort_sessions(sessions: List[ProjectUsage], sort_order: SessionSortOrder) -> List[ProjectUsage]:
    """Sort project usage for the session view.

    Sorting is stable: ties keep their incoming order in both directions.
    Names compare case-sensitively.
    """
    keys = {
        SessionSortOrder.COST_DESCENDING: (lambda p: p.total_cost, True),
        SessionSortOrder.COST_ASCENDING: (lambda p: p.total_cost, False),
        SessionSortOrder.DATE_DESCENDING: (lambda p: p.last_used, True),
        SessionSortOrder.DATE_ASCENDING: (lambda p: p.last_used, False),
        SessionSortOrder.NAME_ASCENDING: (lambda p: p.project_name, False),
        SessionSortOrder.NAME_DESCENDING: (lambda p: p.project_name, True),
    }
    key, reverse = keys[sort_order]
    return sorted(sessions, key=key, reverse=reverse)


class UsageService:
    """Builds and caches usage reports from local Claude logs."""

    def __init__(
        self,
        parser: UsageEntrySource,
        resolver: Optional[DataDirectoryResolver] = None,
        cost_resolver: CostResolver = calculate_cost,
        cache: Optional[TTLCache] = None,
        now: Callable[[], datetime] = _local_now
    ):
        """Initialize the service.

        Args:
            parser: Source of raw usage entries
            resolver: Locates the Claude data directory
            cost_resolver: Prices one entry; called once per deduplicated entry
            cache: Report cache; defaults to a 30 minute TTL cache
            now: Clock used for date range bounds
        """
        self.parser = parser
        self.resolver = resolver or DataDirectoryResolver()
        self.cost_resolver = cost_resolver
        if cache is None:
            cache = TTLCache(
                ttl_seconds=DEFAULT_CACHE_TTL_SECONDS,
                stale_after_seconds=DEFAULT_STALE_AFTER_SECONDS
            )
        self._cache: TTLCache[CacheKey, UsageStatistics] = cache
        self._now = now
        self._diagnostics = ServiceDiagnostics(parser_kind=parser.name)

    @classmethod
    def from_settings(cls, settings: Settings) -> "UsageService":
        """Wire a service from application settings."""
        return cls(
            parser=create_parser(settings.parser),
            resolver=DataDirectoryResolver(directory=settings.data_directory),
            cache=TTLCache(
                ttl_seconds=settings.cache.ttl_seconds,
                stale_after_seconds=settings.cache.stale_after_seconds
            )
        )

    @property
    def diagnostics(self) -> ServiceDiagnostics:
        return self._diagnostics

    @staticmethod
    def _cache_key(date_range: DateRange, project_filter: Optional[str]) -> CacheKey:
        return (date_range.value, project_filter)

    def _projects_directory(self) -> Path:
        try:
            return self.resolver.data_directory() / PROJECTS_SUBDIRECTORY
        except (OSError, RuntimeError) as e:
            raise FileAccessDenied(f"Claude data directory ({e})") from e

    async def get_usage_statistics(
        self,
        date_range: DateRange = DateRange.ALL,
        project_filter: Optional[str] = None
    ) -> UsageStatistics:
        """Return the usage report for a date range.

        Args:
            date_range: Span of entries to include
            project_filter: Only include entries whose project path
                contains this substring

        Returns:
            UsageStatistics, from cache when a valid report exists

        Raises:
            DataNotFound: If the projects directory does not exist
            FileAccessDenied: If it cannot be read or resolved
            UpstreamParseError: Propagated unchanged from the parser
        """
        key = self._cache_key(date_range, project_filter)
        cached = self._cache.get(key)
        if cached is not None:
            logger.info("Using cached statistics for %s", key)
            return cached

        logger.info("Cache miss for %s, computing statistics", key)
        self._diagnostics = replace(self._diagnostics, state=LoadState.LOADING, last_error=None)

        try:
            projects_directory = self._projects_directory()
            if not projects_directory.exists():
                raise DataNotFound(str(projects_directory))
            if not _is_readable(projects_directory):
                raise FileAccessDenied(str(projects_directory))

            now = self._now()
            parse_started = time.perf_counter()
            entries = await self.parser.parse_entries(
                projects_directory,
                date_range.start_date(now),
                now
            )
            parse_time = time.perf_counter() - parse_started
            entries_parsed = len(entries)
            logger.info("Parser returned %d raw entries", entries_parsed)

            if project_filter is not None:
                entries = [entry for entry in entries if project_filter in entry.project_path]
                logger.debug("%d entries match project filter %r", len(entries), project_filter)

            statistics = build_statistics(entries, self.cost_resolver)
            self._cache.put(key, statistics)
        except Exception as e:
            logger.error("Failed to compute usage statistics: %s", e)
            self._diagnostics = replace(
                self._diagnostics,
                state=LoadState.ERROR,
                last_error=str(e),
                last_updated=self._now()
            )
            raise

        parser_cache = self.parser.cache_stats()
        self._diagnostics = ServiceDiagnostics(
            parser_kind=self.parser.name,
            parse_time_seconds=parse_time,
            cache_hit_rate=parser_cache.hit_rate,
            cache_size=parser_cache.size,
            entries_processed=entries_parsed,
            state=LoadState.IDLE,
            last_updated=now
        )
        return statistics

    async def load_usage_statistics(
        self,
        date_range: DateRange = DateRange.ALL,
        project_filter: Optional[str] = None
    ) -> StatisticsResult:
        """Like get_usage_statistics, but report failures as a result value."""
        try:
            statistics = await self.get_usage_statistics(date_range, project_filter)
        except UsageStatisticsError as e:
            return StatisticsResult(state=LoadState.ERROR, error=e)
        return StatisticsResult(state=LoadState.IDLE, statistics=statistics)

    async def get_session_statistics(
        self,
        date_range: DateRange = DateRange.ALL,
        sort_order: SessionSortOrder = SessionSortOrder.COST_DESCENDING
    ) -> List[ProjectUsage]:
        """Return per-project usage in the requested order."""
        statistics = await self.get_usage_statistics(date_range)
        return sort_sessions(list(statistics.by_project), sort_order)

    def validate_data_access(self) -> bool:
        """Check that the projects directory exists and is readable.

        Raises:
            FileAccessDenied: If the data directory cannot be resolved
        """
        projects_directory = self._projects_directory()
        return projects_directory.exists() and _is_readable(projects_directory)

    async def clear_cache(self) -> None:
        """Drop cached reports and the parser's own cache."""
        self._cache.clear()
        await self.parser.clear_cache()
        logger.info("Usage statistics cache cleared")

    def cache_metadata(
        self,
        date_range: DateRange = DateRange.ALL,
        project_filter: Optional[str] = None
    ) -> Optional[CacheMetadata]:
        return self._cache.metadata(self._cache_key(date_range, project_filter))
