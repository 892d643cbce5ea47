from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from .models import DailyMetricRecord

TIMEFRAME_DAYS: dict[str, Optional[int]] = {
    "1D": 1,
    "1W": 7,
    "1M": 30,
    "3M": 90,
    "1Y": 365,
    "All": None,
}

DEFAULT_TIMEFRAME_DAYS = 30


def resolve_days(timeframe: str | None) -> int | None:
    """Trailing window length in days, ``None`` for unbounded; unknown tokens mean 30."""
    if timeframe in TIMEFRAME_DAYS:
        return TIMEFRAME_DAYS[timeframe]
    return DEFAULT_TIMEFRAME_DAYS


def _day_start_utc(day: str) -> datetime:
    return datetime.fromisoformat(day).replace(tzinfo=timezone.utc)


def filter_by_timeframe(
    series: Sequence[DailyMetricRecord],
    timeframe: str | None,
    now: datetime,
) -> list[DailyMetricRecord]:
    days = resolve_days(timeframe)
    if days is None:
        return list(series)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    cutoff = now - timedelta(days=days)
    return [r for r in series if _day_start_utc(r.date) >= cutoff]
