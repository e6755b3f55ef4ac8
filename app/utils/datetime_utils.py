"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- "Today" and wall-clock HH:MM values are interpreted in the operator timezone (settings.OPERATOR_TZ).
"""
from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings

UTC = timezone.utc


def local_tz() -> ZoneInfo:
    """Operator timezone from settings."""
    return ZoneInfo(settings.OPERATOR_TZ)


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for finalized_at, created_at, audit timestamps."""
    return datetime.now(UTC)


def local_today(utc_now: Optional[datetime] = None) -> date:
    """Calendar date in the operator timezone for the given UTC time (default now)."""
    now = utc_now or now_utc()
    return ensure_utc(now).astimezone(local_tz()).date()


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to the operator timezone. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(local_tz())


def combine_local(day: date, wall_clock: time) -> datetime:
    """Interpret a wall-clock time on `day` in the operator timezone and return it in UTC."""
    return datetime.combine(day, wall_clock, tzinfo=local_tz()).astimezone(UTC)


def format_hhmm(dt: Optional[datetime]) -> str:
    """Local HH:MM for a stored timestamp, or '' when absent (matches empty form inputs)."""
    if dt is None:
        return ""
    return to_local(dt).strftime("%H:%M")


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Elapsed hours rounded to 2 decimals, or None unless both ends are present."""
    if start is None or end is None:
        return None
    delta = ensure_utc(end) - ensure_utc(start)
    return round(delta.total_seconds() / 3600, 2)
