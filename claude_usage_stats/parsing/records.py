"""
Conversion of raw JSONL log records into usage entries.

Shared by every parser implementation so they agree on field fallbacks,
filtering and project path extraction.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from claude_usage_stats.core.models import UsageEntry, parse_timestamp

logger = logging.getLogger(__name__)

JSONL_SUFFIX = ".jsonl"
PROJECTS_DIR_NAME = "projects"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def _first_present(*values: Any) -> Any:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def record_to_entry(record: Dict[str, Any], project_path: str) -> Optional[UsageEntry]:
    """Convert one decoded log record into a UsageEntry.

    Records without a usable session id that also carry no tokens and no
    cost are not usage and yield None. Entries with placeholder model names
    are kept; the report excludes them from the model breakdown only.

    Args:
        record: Decoded JSON object from one log line
        project_path: Project the log file belongs to

    Returns:
        UsageEntry, or None if the record is not a usage record
    """
    message = _as_dict(record.get("message"))
    usage = _as_dict(record.get("usage") or message.get("usage"))

    input_tokens = _as_int(usage.get("input_tokens"))
    output_tokens = _as_int(usage.get("output_tokens"))
    cache_creation_tokens = _as_int(
        _first_present(usage.get("cache_creation_input_tokens"), usage.get("cache_creation_tokens"))
    )
    cache_read_tokens = _as_int(
        _first_present(usage.get("cache_read_input_tokens"), usage.get("cache_read_tokens"))
    )
    total_tokens = input_tokens + output_tokens + cache_creation_tokens + cache_read_tokens

    cost = _first_present(record.get("cost"), record.get("costUSD"))
    cost = cost if isinstance(cost, (int, float)) and not isinstance(cost, bool) else 0

    session_id = record.get("sessionId")
    has_session = isinstance(session_id, str) and session_id not in ("", "unknown")
    if not has_session and total_tokens == 0 and cost == 0:
        return None

    model = _first_present(record.get("model"), message.get("model")) or ""

    request_id = _first_present(
        record.get("requestId"), record.get("request_id"), record.get("message_id")
    )
    message_id = _first_present(record.get("message_id"), message.get("id"))

    timestamp = _first_present(record.get("timestamp"), record.get("date"))
    if not timestamp:
        timestamp = datetime.now(timezone.utc).isoformat()

    return UsageEntry(
        timestamp=str(timestamp),
        session_id=session_id if isinstance(session_id, str) else "unknown",
        model=str(model),
        project_path=project_path,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cache_creation_tokens=cache_creation_tokens,
        cache_read_tokens=cache_read_tokens,
        request_id=_as_optional_str(request_id),
        message_id=_as_optional_str(message_id),
        message_type=str(_first_present(record.get("type"), record.get("message_type")) or "")
    )


def parse_line(line: str, project_path: str) -> Optional[UsageEntry]:
    """Decode a single JSONL line.

    Returns:
        UsageEntry, or None for blank, malformed or non-usage lines
    """
    stripped = line.strip()
    if not stripped:
        return None

    try:
        record = json.loads(stripped)
    except json.JSONDecodeError:
        return None

    if not isinstance(record, dict):
        return None
    return record_to_entry(record, project_path)


def is_in_date_range(
    entry: UsageEntry,
    start_date: Optional[datetime],
    end_date: Optional[datetime]
) -> bool:
    """Check an entry against inclusive date bounds.

    Entries whose timestamp cannot be parsed only pass when no bound is set.
    """
    if start_date is None and end_date is None:
        return True

    moment = parse_timestamp(entry.timestamp)
    if moment is None:
        return False

    if start_date is not None and moment < _aware(start_date):
        return False
    if end_date is not None and moment > _aware(end_date):
        return False
    return True


def _aware(moment: datetime) -> datetime:
    """Treat naive bounds as local time."""
    if moment.tzinfo is None:
        return moment.astimezone()
    return moment


def extract_project_path(file_path: Path) -> str:
    """Derive the project path from a log file location.

    The project path is every directory between `projects` and the file,
    joined with slashes. Files outside a `projects` tree fall back to
    their parent directory.
    """
    parts = file_path.parts
    if PROJECTS_DIR_NAME in parts:
        index = len(parts) - 1 - parts[::-1].index(PROJECTS_DIR_NAME)
        directories = parts[index + 1:-1]
        if directories:
            return "/" + "/".join(directories)
    return str(file_path.parent)


def find_jsonl_files(directory: Path) -> List[Path]:
    """Recursively list JSONL files, largest first.

    Hidden files and directories are skipped. Entries that cannot be
    inspected are logged and skipped.
    """
    found = []

    def _on_error(error: OSError) -> None:
        logger.warning("Failed to access %s: %s", error.filename, error)

    for root, dirs, files in os.walk(directory, onerror=_on_error):
        dirs[:] = [d for d in dirs if not d.startswith(".")]
        for name in files:
            if name.startswith(".") or not name.endswith(JSONL_SUFFIX):
                continue
            path = Path(root) / name
            try:
                size = path.stat().st_size
            except OSError as e:
                logger.warning("Failed to stat %s: %s", path, e)
                continue
            found.append((size, path))

    found.sort(key=lambda item: item[0], reverse=True)
    return [path for _, path in found]
