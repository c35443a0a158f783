from datetime import datetime, timedelta, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def now_iso() -> str:
    """Horodatage serveur (UTC, ISO 8601) écrit dans les colonnes *_at."""
    return utcnow().isoformat()

def days_ago(days: int) -> datetime:
    return utcnow() - timedelta(days=days)

def from_timestamp(ts: Optional[int]) -> Optional[datetime]:
    # Stripe expose des timestamps Unix (secondes)
    if ts is None:
        return None
    return datetime.fromtimestamp(int(ts), tz=timezone.utc)

def to_iso(value: Any) -> Optional[str]:
    """Normalise datetime | str ISO | None en str ISO (une chaîne illisible est rendue telle quelle)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).isoformat()
    except ValueError:
        return str(value)
