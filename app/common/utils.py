import math
from typing import Any, Iterable, Optional
from datetime import date, datetime, timezone


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (``Math.round`` semantics)."""
    return int(math.floor(value + 0.5))


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage; 0 when there is nothing to divide by."""
    if whole <= 0:
        return 0
    return round_half_up(100 * part / whole)


def mean(values: Iterable[float]) -> Optional[float]:
    items = list(values)
    if not items:
        return None
    return sum(items) / len(items)


def as_number(value: Any) -> Optional[float]:
    """Return ``value`` as a float only when it is a real number (bools and strings excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            # Epoch millis from the web client, seconds otherwise
            seconds = value / 1000 if value > 1e11 else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, dict):
        # Serialised Firestore timestamps: {"seconds": ..., "nanoseconds": ...}
        seconds = value.get("seconds", value.get("_seconds"))
        return parse_datetime(seconds) if isinstance(seconds, (int, float)) else None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, str) and len(value) == 10:
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def current_timestamp() -> datetime:
    """Get current UTC timestamp"""
    return datetime.now(timezone.utc)
