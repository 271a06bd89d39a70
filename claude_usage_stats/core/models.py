"""
Data models for usage statistics.

Defines usage entries consumed by the engine and the report records it builds.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Tuple


UNKNOWN_PROJECT_NAME = "Unknown Project"

# Model names that never get a row in the model breakdown
INVALID_MODEL_NAMES = frozenset({"", "unknown", "<synthetic>"})


def parse_timestamp(timestamp: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as written by the usage logs.

    Naive timestamps are treated as UTC.

    Args:
        timestamp: Timestamp string such as "2025-06-01T10:20:30.123Z"

    Returns:
        Timezone-aware datetime, or None if the string cannot be parsed
    """
    if not timestamp:
        return None

    value = timestamp.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_valid_model_name(model: str) -> bool:
    """Check whether a model name may appear in the model breakdown."""
    return model not in INVALID_MODEL_NAMES


@dataclass(frozen=True)
class UsageEntry:
    """One recorded request/response pair from the usage logs.

    Produced once per ingestion by a parser and consumed read-only.
    """
    timestamp: str
    session_id: str
    model: str
    project_path: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    request_id: Optional[str] = None
    message_id: Optional[str] = None
    message_type: str = ""

    @property
    def total_tokens(self) -> int:
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )

    @property
    def project_name(self) -> str:
        """Last component of the project path."""
        if not self.project_path:
            return UNKNOWN_PROJECT_NAME
        return self.project_path.rstrip("/").split("/")[-1] or self.project_path

    @property
    def date_key(self) -> str:
        """Calendar day of the entry (YYYY-MM-DD, local time).

        Falls back to the first ten characters of the raw timestamp when
        it cannot be parsed.
        """
        parsed = parse_timestamp(self.timestamp)
        if parsed is None:
            return self.timestamp[:10]
        return parsed.astimezone().strftime("%Y-%m-%d")


@dataclass(frozen=True)
class ModelUsage:
    """Usage rolled up for a single model."""
    model: str
    total_cost: float
    total_tokens: int
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int
    cache_read_tokens: int
    session_count: int
    request_count: int


@dataclass(frozen=True)
class DailyUsage:
    """Usage rolled up for a single calendar day."""
    date: str
    total_cost: float
    total_tokens: int
    models_used: Tuple[str, ...]
    request_count: int


@dataclass(frozen=True)
class ProjectUsage:
    """Usage rolled up for a single project directory."""
    project_path: str
    project_name: str
    total_cost: float
    total_tokens: int
    session_count: int
    request_count: int
    last_used: str

    @property
    def average_cost_per_session(self) -> float:
        if self.session_count <= 0:
            return 0.0
        return self.total_cost / self.session_count


@dataclass(frozen=True)
class UsageStatistics:
    """Complete usage report for one query.

    `total_sessions` counts distinct session ids before deduplication;
    every other total is computed after deduplication.
    """
    total_cost: float
    total_tokens: int
    total_input_tokens: int
    total_output_tokens: int
    total_cache_creation_tokens: int
    total_cache_read_tokens: int
    total_sessions: int
    total_requests: int
    by_model: Tuple[ModelUsage, ...] = field(default_factory=tuple)
    by_date: Tuple[DailyUsage, ...] = field(default_factory=tuple)
    by_project: Tuple[ProjectUsage, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "UsageStatistics":
        """Canonical report for an empty entry set."""
        return cls(
            total_cost=0.0,
            total_tokens=0,
            total_input_tokens=0,
            total_output_tokens=0,
            total_cache_creation_tokens=0,
            total_cache_read_tokens=0,
            total_sessions=0,
            total_requests=0,
        )

    @property
    def average_cost_per_request(self) -> float:
        if self.total_requests <= 0:
            return 0.0
        return self.total_cost / self.total_requests

    @property
    def average_cost_per_session(self) -> float:
        if self.total_sessions <= 0:
            return 0.0
        return self.total_cost / self.total_sessions


class DateRange(Enum):
    """Named spans bounding which entries are fetched."""
    ALL = "all"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"

    @property
    def days(self) -> Optional[int]:
        return {
            DateRange.ALL: None,
            DateRange.LAST_7_DAYS: 7,
            DateRange.LAST_30_DAYS: 30,
        }[self]

    def start_date(self, now: datetime) -> Optional[datetime]:
        """Earliest instant included in the range, or None for all time."""
        if self.days is None:
            return None
        return now - timedelta(days=self.days)


class SessionSortOrder(Enum):
    """Orderings available for the per-project session view."""
    COST_DESCENDING = "cost-desc"
    COST_ASCENDING = "cost-asc"
    DATE_DESCENDING = "date-desc"
    DATE_ASCENDING = "date-asc"
    NAME_ASCENDING = "name-asc"
    NAME_DESCENDING = "name-desc"
