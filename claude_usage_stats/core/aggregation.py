"""
Aggregation of priced usage entries into report breakdowns.

Accumulators are immutable values: `extend` and `add` return a new
accumulator. Breakdowns are produced by grouping priced entries by model,
calendar day and project path, then extending one empty accumulator per key
with its whole group, so each key's session and model sets are built once.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, Iterable, List, Sequence, Tuple

from .dedup import dedupe_entries
from .models import (
    DailyUsage,
    ModelUsage,
    ProjectUsage,
    UsageEntry,
    UsageStatistics,
    is_valid_model_name,
)
from .pricing import CostResolver, calculate_cost

logger = logging.getLogger(__name__)

PricedEntry = Tuple[UsageEntry, float]


@dataclass(frozen=True)
class ModelAccumulator:
    """Running totals for one model."""
    model: str
    total_cost: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    session_ids: FrozenSet[str] = frozenset()
    entry_count: int = 0

    def extend(self, priced: Sequence[PricedEntry]) -> "ModelAccumulator":
        """Return a new accumulator including every priced entry."""
        return replace(
            self,
            total_cost=self.total_cost + sum(cost for _, cost in priced),
            input_tokens=self.input_tokens + sum(e.input_tokens for e, _ in priced),
            output_tokens=self.output_tokens + sum(e.output_tokens for e, _ in priced),
            cache_creation_tokens=self.cache_creation_tokens + sum(e.cache_creation_tokens for e, _ in priced),
            cache_read_tokens=self.cache_read_tokens + sum(e.cache_read_tokens for e, _ in priced),
            session_ids=self.session_ids.union(e.session_id for e, _ in priced),
            entry_count=self.entry_count + len(priced)
        )

    def add(self, entry: UsageEntry, cost: float) -> "ModelAccumulator":
        return self.extend([(entry, cost)])

    def build(self) -> ModelUsage:
        return ModelUsage(
            model=self.model,
            total_cost=self.total_cost,
            total_tokens=(
                self.input_tokens
                + self.output_tokens
                + self.cache_creation_tokens
                + self.cache_read_tokens
            ),
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            cache_creation_tokens=self.cache_creation_tokens,
            cache_read_tokens=self.cache_read_tokens,
            session_count=len(self.session_ids),
            request_count=self.entry_count
        )


@dataclass(frozen=True)
class DailyAccumulator:
    """Running totals for one calendar day."""
    date: str
    total_cost: float = 0.0
    total_tokens: int = 0
    models_used: FrozenSet[str] = frozenset()
    entry_count: int = 0

    def extend(self, priced: Sequence[PricedEntry]) -> "DailyAccumulator":
        return replace(
            self,
            total_cost=self.total_cost + sum(cost for _, cost in priced),
            total_tokens=self.total_tokens + sum(e.total_tokens for e, _ in priced),
            models_used=self.models_used.union(e.model for e, _ in priced),
            entry_count=self.entry_count + len(priced)
        )

    def add(self, entry: UsageEntry, cost: float) -> "DailyAccumulator":
        return self.extend([(entry, cost)])

    def build(self) -> DailyUsage:
        return DailyUsage(
            date=self.date,
            total_cost=self.total_cost,
            total_tokens=self.total_tokens,
            models_used=tuple(sorted(self.models_used)),
            request_count=self.entry_count
        )


@dataclass(frozen=True)
class ProjectAccumulator:
    """Running totals for one project path."""
    project_path: str
    project_name: str
    total_cost: float = 0.0
    total_tokens: int = 0
    session_ids: FrozenSet[str] = frozenset()
    entry_count: int = 0
    last_used: str = ""

    def extend(self, priced: Sequence[PricedEntry]) -> "ProjectAccumulator":
        return replace(
            self,
            total_cost=self.total_cost + sum(cost for _, cost in priced),
            total_tokens=self.total_tokens + sum(e.total_tokens for e, _ in priced),
            session_ids=self.session_ids.union(e.session_id for e, _ in priced),
            entry_count=self.entry_count + len(priced),
            last_used=max([self.last_used, *(e.timestamp for e, _ in priced)])
        )

    def add(self, entry: UsageEntry, cost: float) -> "ProjectAccumulator":
        return self.extend([(entry, cost)])

    def build(self) -> ProjectUsage:
        return ProjectUsage(
            project_path=self.project_path,
            project_name=self.project_name,
            total_cost=self.total_cost,
            total_tokens=self.total_tokens,
            session_count=len(self.session_ids),
            request_count=self.entry_count,
            last_used=self.last_used
        )


@dataclass(frozen=True)
class Breakdowns:
    """Accumulator maps for the three report dimensions."""
    by_model: Dict[str, ModelAccumulator]
    by_date: Dict[str, DailyAccumulator]
    by_project: Dict[str, ProjectAccumulator]


def fold_breakdowns(priced_entries: Iterable[PricedEntry]) -> Breakdowns:
    """Group priced entries into per-model, per-day and per-project accumulators.

    Runs in time linear in the number of entries. Entries with placeholder
    model names are left out of the model dimension only. The grouping maps
    are local to this call, so concurrent folds never share state.
    """
    by_model: Dict[str, List[PricedEntry]] = defaultdict(list)
    by_date: Dict[str, List[PricedEntry]] = defaultdict(list)
    by_project: Dict[str, List[PricedEntry]] = defaultdict(list)
    skipped = 0

    for priced in priced_entries:
        entry = priced[0]
        if is_valid_model_name(entry.model):
            by_model[entry.model].append(priced)
        else:
            skipped += 1
        by_date[entry.date_key].append(priced)
        by_project[entry.project_path].append(priced)

    if skipped:
        logger.debug("Skipped %d entries with invalid models in model breakdown", skipped)

    return Breakdowns(
        by_model={
            model: ModelAccumulator(model=model).extend(group)
            for model, group in by_model.items()
        },
        by_date={
            date: DailyAccumulator(date=date).extend(group)
            for date, group in by_date.items()
        },
        by_project={
            path: ProjectAccumulator(project_path=path, project_name=group[0][0].project_name).extend(group)
            for path, group in by_project.items()
        }
    )


def assemble_breakdowns(
    breakdowns: Breakdowns
) -> Tuple[Tuple[ModelUsage, ...], Tuple[DailyUsage, ...], Tuple[ProjectUsage, ...]]:
    """Build summary records and order them for the report.

    Models and projects are sorted by cost (highest first), days
    chronologically.
    """
    by_model = sorted(
        (acc.build() for acc in breakdowns.by_model.values()),
        key=lambda usage: usage.total_cost,
        reverse=True
    )
    by_date = sorted(
        (acc.build() for acc in breakdowns.by_date.values()),
        key=lambda usage: usage.date
    )
    by_project = sorted(
        (acc.build() for acc in breakdowns.by_project.values()),
        key=lambda usage: usage.total_cost,
        reverse=True
    )
    return tuple(by_model), tuple(by_date), tuple(by_project)


def price_entries(
    entries: Sequence[UsageEntry],
    cost_resolver: CostResolver
) -> List[PricedEntry]:
    """Resolve the cost of every entry exactly once."""
    return [
        (
            entry,
            cost_resolver(
                entry.model,
                entry.input_tokens,
                entry.output_tokens,
                entry.cache_creation_tokens,
                entry.cache_read_tokens
            )
        )
        for entry in entries
    ]


def build_statistics(
    entries: Sequence[UsageEntry],
    cost_resolver: CostResolver = calculate_cost
) -> UsageStatistics:
    """Turn raw usage entries into a complete report.

    Sessions are counted over the raw entries, before deduplication; every
    other figure is computed over the deduplicated set. Each surviving entry
    is priced once and that cost is reused for every breakdown.

    Args:
        entries: Raw entries from a parser, possibly containing duplicates
        cost_resolver: Callable returning the USD cost of one entry

    Returns:
        Immutable UsageStatistics (the empty report for no entries)
    """
    if not entries:
        return UsageStatistics.empty()

    session_ids = {entry.session_id for entry in entries}

    deduped = dedupe_entries(entries)
    priced = price_entries(deduped.entries, cost_resolver)

    total_cost = sum(cost for _, cost in priced)
    input_tokens = sum(entry.input_tokens for entry, _ in priced)
    output_tokens = sum(entry.output_tokens for entry, _ in priced)
    cache_creation_tokens = sum(entry.cache_creation_tokens for entry, _ in priced)
    cache_read_tokens = sum(entry.cache_read_tokens for entry, _ in priced)

    by_model, by_date, by_project = assemble_breakdowns(fold_breakdowns(priced))

    statistics = UsageStatistics(
        total_cost=total_cost,
        total_tokens=input_tokens + output_tokens + cache_creation_tokens + cache_read_tokens,
        total_input_tokens=input_tokens,
        total_output_tokens=output_tokens,
        total_cache_creation_tokens=cache_creation_tokens,
        total_cache_read_tokens=cache_read_tokens,
        total_sessions=len(session_ids),
        total_requests=len(priced),
        by_model=by_model,
        by_date=by_date,
        by_project=by_project
    )

    logger.info(
        "Built statistics: %d sessions, %d requests, $%.6f, %d tokens",
        statistics.total_sessions,
        statistics.total_requests,
        statistics.total_cost,
        statistics.total_tokens
    )
    return statistics
