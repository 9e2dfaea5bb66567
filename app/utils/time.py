"""Time utilities (UTC / US Eastern)."""

import time
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

ET = ZoneInfo("America/New_York")


def now_seconds() -> float:
    """Current wall-clock time as epoch seconds."""
    return time.time()


def to_epoch_ms(seconds: float) -> int:
    return int(seconds * 1000)


def utc_date(seconds: Optional[float] = None) -> date:
    """UTC calendar date for an epoch timestamp (defaults to now)."""
    if seconds is None:
        seconds = now_seconds()
    return datetime.fromtimestamp(seconds, tz=timezone.utc).date()


def parse_iso_date(value: str) -> Optional[date]:
    """
    Parse the date part of an ISO date / datetime string.

    Expirations arrive as ``YYYY-MM-DD``; an offset-aware datetime is
    converted to its UTC calendar date, a naive one keeps its own date.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def market_date(seconds: Optional[float] = None) -> date:
    """Trading-session date in US Eastern time (used to pick 0DTE expirations)."""
    if seconds is None:
        seconds = now_seconds()
    return datetime.fromtimestamp(seconds, tz=ET).date()


def to_utc_iso(seconds: float) -> str:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()
