"""
Error types raised while building usage reports.

All of them are terminal for the current call; none are retried.
"""

from typing import Optional


class UsageStatisticsError(Exception):
    """Base class for report failures surfaced to callers."""
    recovery_suggestion: str = ""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class DataNotFound(UsageStatisticsError):
    """Raised when the usage data directory does not exist."""
    recovery_suggestion = (
        "Make sure the ~/.claude/projects directory exists and contains usage log files"
    )

    def __init__(self, path: str):
        super().__init__(f"Usage data not found: {path}", path)


class FileAccessDenied(UsageStatisticsError):
    """Raised when usage data exists but cannot be read."""
    recovery_suggestion = "Check the file permissions of the Claude data directory"

    def __init__(self, path: str):
        super().__init__(f"Cannot access file: {path}", path)


class UpstreamParseError(UsageStatisticsError):
    """Raised by a parser when a log file cannot be processed."""
    recovery_suggestion = "The data file may be corrupted, check its format"

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to parse {path}: {reason}", path)
        self.reason = reason
