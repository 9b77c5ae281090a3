"""Time utilities: timezone-aware helpers. All calendar math happens in UTC."""
from __future__ import annotations
from datetime import date, datetime, timezone
from typing import Optional

__all__ = ["utc_now", "iso_utc", "ensure_utc", "parse_date"]

def utc_now() -> datetime:
    """Return an aware UTC datetime."""
    return datetime.now(timezone.utc)

def ensure_utc(dt: datetime) -> datetime:
    """Normalize to aware UTC. Naive values are taken to already be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def iso_utc(dt: Optional[datetime] = None) -> str:
    """Return ISO8601 string with Z suffix for given datetime (defaults to now)."""
    if dt is None:
        dt = utc_now()
    return ensure_utc(dt).isoformat().replace('+00:00', 'Z')

def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD calendar date."""
    return date.fromisoformat(value.strip())
