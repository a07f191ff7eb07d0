"""
Timezone-aware datetime helpers.
- Store and compute in UTC.
- API responses expose datetimes as ISO-8601 with Z.
"""
from datetime import datetime, timezone
from typing import Optional

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for created_at, updated_at, deleted_at."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def iso_8601_utc(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with Z for UTC. SQLite hands back naive values, which are treated as UTC."""
    if dt is None:
        return None
    s = ensure_utc(dt).isoformat()
    if s.endswith("+00:00"):
        s = s[:-6] + "Z"
    return s
