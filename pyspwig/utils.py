"""Utility functions for pyspwig."""

from datetime import datetime, timezone
from typing import Optional

# =============================================================================
# Timestamp parsing utilities
# =============================================================================


def parse_iso_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse an ISO format timestamp from the shop API.

    Args:
        timestamp_str: ISO format timestamp string (e.g., "2025-01-15T10:30:00.000000Z")

    Returns:
        Timezone-aware datetime (naive input is assumed to be UTC),
        or None if parsing fails

    Examples:
        >>> parse_iso_timestamp("2025-01-15T10:30:00Z").isoformat()
        '2025-01-15T10:30:00+00:00'
        >>> parse_iso_timestamp("not a date") is None
        True
    """
    if not timestamp_str or not isinstance(timestamp_str, str):
        return None

    # The 'Z' suffix indicates UTC time
    if timestamp_str.endswith("Z"):
        timestamp_str = timestamp_str[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(timestamp_str)
    except ValueError:
        # Try without fractional seconds, which some servers send with
        # more than six digits
        if "." not in timestamp_str:
            return None
        head, _, tail = timestamp_str.partition(".")
        offset = ""
        for sign in ("+", "-"):
            if sign in tail:
                offset = sign + tail.split(sign, 1)[1]
                break
        try:
            dt = datetime.fromisoformat(head + offset)
        except ValueError:
            return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def join_url(base: str, endpoint: str) -> str:
    """Join a base URL and an endpoint path with exactly one slash.

    Examples:
        >>> join_url("http://localhost:8000/", "/api/theme-dev/sync/")
        'http://localhost:8000/api/theme-dev/sync/'
    """
    return f"{base.rstrip('/')}/{endpoint.lstrip('/')}"
