"""
Deduplication of usage entries.

Entries are recognised as duplicates by their message id and request id.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from .models import UsageEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DedupResult:
    """Entries kept by deduplication plus diagnostic counts."""
    entries: Tuple[UsageEntry, ...]
    duplicates_removed: int
    without_full_ids: int


def dedup_key(entry: UsageEntry) -> Optional[str]:
    """Return the composite dedup key, or None if an identifier is missing."""
    if entry.message_id and entry.request_id:
        return f"{entry.message_id}:{entry.request_id}"
    return None


def dedupe_entries(entries: Iterable[UsageEntry]) -> DedupResult:
    """Collapse logically duplicate entries.

    The first entry seen for a `message_id:request_id` key is kept and later
    ones are dropped. Entries missing either identifier are never treated as
    duplicates of anything: each is stored under a unique fabricated key.

    Args:
        entries: Raw entries, in any order

    Returns:
        DedupResult with the surviving entries (order not significant)
    """
    unique: Dict[str, UsageEntry] = {}
    duplicates = 0
    without_ids = 0
    total = 0

    for entry in entries:
        total += 1
        key = dedup_key(entry)

        if key is None:
            fallback_key = f"{entry.timestamp}:{entry.model}:{entry.total_tokens}:{uuid.uuid4()}"
            unique[fallback_key] = entry
            without_ids += 1
            continue

        if key in unique:
            duplicates += 1
            continue
        unique[key] = entry

    logger.debug(
        "Dedup: %d raw entries, %d kept, %d duplicates, %d without full ids",
        total, len(unique), duplicates, without_ids
    )

    return DedupResult(
        entries=tuple(unique.values()),
        duplicates_removed=duplicates,
        without_full_ids=without_ids
    )
