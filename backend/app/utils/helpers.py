from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Naive UTC timestamp, the form every DateTime column in this service stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Accepts ISO-8601 strings ("2025-01-01T10:00:00Z") or unix seconds (int/float/str).
    Returns naive UTC, or None when the value cannot be read.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return to_naive_utc(value)

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            return datetime.fromtimestamp(float(s), tz=timezone.utc).replace(tzinfo=None)
        except ValueError:
            pass
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return to_naive_utc(datetime.fromisoformat(s))
        except ValueError:
            return None

    return None


def format_duration(seconds: Optional[int]) -> str:
    """
    Format duration in seconds to human-readable format
    Example: 125 -> "2m 5s"
    """
    if not seconds:
        return "0s"

    minutes = seconds // 60
    remaining_seconds = seconds % 60

    if minutes == 0:
        return f"{remaining_seconds}s"
    return f"{minutes}m {remaining_seconds}s"
