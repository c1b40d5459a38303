"""
Core Utility Functions.

Time-window and row-coercion helpers shared by the search, recommendation
and translation services.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, TypeVar


T = TypeVar("T")


# =============================================================================
# Time
# =============================================================================

def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def window_start(days: int, now: Optional[datetime] = None) -> datetime:
    """Start of a trailing window of ``days`` days ending at ``now``."""
    return (now or utc_now()) - timedelta(days=days)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Coerce a store timestamp into an aware datetime.

    Supabase returns ISO-8601 strings (sometimes with a trailing 'Z');
    naive values are taken to be UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def isoformat(dt: datetime) -> str:
    """ISO string for store filters."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


# =============================================================================
# Numbers / Rows
# =============================================================================

def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def to_float(value: Any) -> Optional[float]:
    """Numeric columns come back as str (numeric), int or float."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def safe_get(obj: Any, *keys: str, default: Any = None) -> Any:
    """
    Safely walk nested dictionaries.

    Example:
        >>> safe_get({"users": {"email": "a@b"}}, "users", "email")
        'a@b'
    """
    current = obj
    for key in keys:
        if isinstance(current, dict):
            current = current.get(key)
        else:
            return default
        if current is None:
            return default
    return current


def dedupe_preserving_order(items: Iterable[T]) -> List[T]:
    seen = set()
    out: List[T] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


def embedded_email(row: Dict[str, Any], relation: str = "users") -> Optional[str]:
    """Email of an embedded user relation (``select("*, users(email)")``)."""
    return safe_get(row, relation, "email")
