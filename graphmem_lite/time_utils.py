"""Time utilities for GraphMem Lite.

All stored timestamps are integer milliseconds since the Unix epoch.
Also provides parsing for expiry specifications (e.g., "7d", "12h" or
an ISO date) used when creating contexts.
"""

import re
import time
from datetime import datetime, timezone
from typing import Optional

MS_PER_HOUR = 60 * 60 * 1000
MS_PER_DAY = 24 * MS_PER_HOUR

# Pattern for relative time: number + unit (h=hours, d=days, w=weeks, m=months)
RELATIVE_TIME_PATTERN = re.compile(r"^(\d+)([hdwm])$", re.IGNORECASE)

# Unit multipliers in milliseconds
TIME_UNITS = {
    "h": MS_PER_HOUR,
    "d": MS_PER_DAY,
    "w": 7 * MS_PER_DAY,
    "m": 30 * MS_PER_DAY,  # approximate month
}

ISO_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%S.%f%z",
]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def days_between(earlier: int, later: int) -> float:
    """Elapsed days between two ms timestamps (negative if reversed)."""
    return (later - earlier) / MS_PER_DAY


def parse_relative_expiry(spec: str, now: int) -> Optional[int]:
    """Parse a relative time specification into a future ms timestamp.

    Supported formats:
    - "12h" -> 12 hours from now
    - "7d" -> 7 days from now
    - "2w" -> 2 weeks from now
    - "1m" -> 30 days from now

    Args:
        spec: Relative time specification string
        now: Reference time in epoch milliseconds

    Returns:
        Expiry timestamp in ms, or None if parsing fails
    """
    match = RELATIVE_TIME_PATTERN.match(spec.strip())
    if not match:
        return None

    amount = int(match.group(1))
    unit = match.group(2).lower()
    return now + amount * TIME_UNITS[unit]


def parse_iso_date(spec: str) -> Optional[int]:
    """Parse an ISO date string into epoch milliseconds.

    Naive datetimes are treated as UTC.

    Args:
        spec: ISO date/datetime string

    Returns:
        Timestamp in ms, or None if parsing fails
    """
    spec = spec.strip()
    for fmt in ISO_FORMATS:
        try:
            dt = datetime.strptime(spec, fmt)
        except ValueError:
            continue
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)

    return None


def parse_expiry(spec: int | float | str | None, now: int) -> Optional[int]:
    """Resolve an expiry given as ms timestamp, relative spec or ISO date.

    Args:
        spec: Absolute ms timestamp, "7d"-style offset, ISO date, or None
        now: Reference time in epoch milliseconds

    Returns:
        Expiry timestamp in ms, or None when no expiry was given

    Raises:
        ValueError: If a string spec cannot be parsed
    """
    if spec is None:
        return None
    if isinstance(spec, (int, float)):
        return int(spec)

    spec = spec.strip()
    if not spec:
        return None
    if spec.isdigit():
        return int(spec)

    result = parse_relative_expiry(spec, now)
    if result is None:
        result = parse_iso_date(spec)
    if result is None:
        raise ValueError(f"Unrecognized expiry specification: {spec!r}")
    return result


def timestamp_to_iso(timestamp: int) -> str:
    """Convert an epoch-ms timestamp to an ISO format string (UTC)."""
    dt = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
    return dt.isoformat()
