from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Sequence

from .metrics import METRIC_KEYS
from .models import DailyMetricRecord


def compute_delta(current: float | None, previous: float | None) -> dict[str, float | None] | None:
    if current is None or previous is None:
        return None
    diff = current - previous
    percent = None if previous == 0 else (diff / previous) * 100
    return {"diff": diff, "percent": percent}


def value_before(series: Sequence[DailyMetricRecord], key: str, days_back: int) -> float | None:
    """Most recent value of ``key`` dated at least ``days_back`` days before the latest record."""
    if not series:
        return None
    target = date.fromisoformat(series[-1].date) - timedelta(days=days_back)
    for row in reversed(series):
        if date.fromisoformat(row.date) > target:
            continue
        v = getattr(row, key)
        if v is not None:
            return float(v)
    return None


def _max_by_metric(series: Sequence[DailyMetricRecord]) -> dict[str, float | None]:
    out: dict[str, float | None] = {}
    for key in METRIC_KEYS:
        vals = [float(v) for v in (getattr(r, key) for r in series) if v is not None]
        out[key] = max(vals) if vals else None
    return out


def build_snapshot(series: Sequence[DailyMetricRecord]) -> dict[str, Any]:
    if not series:
        return {"date": None, "metrics": {}}

    latest = series[-1]
    previous = series[-2] if len(series) > 1 else None
    max_by_metric = _max_by_metric(series)

    metrics: dict[str, Any] = {}
    for key in METRIC_KEYS:
        value = getattr(latest, key)
        value = float(value) if value is not None else None
        prev_value = getattr(previous, key) if previous is not None else None
        metrics[key] = {
            "value": value,
            "max": max_by_metric[key],
            "isRecord": value is not None and value == max_by_metric[key],
            "delta": compute_delta(value, float(prev_value) if prev_value is not None else None),
            "delta1d": compute_delta(value, value_before(series, key, 1)),
            "delta1w": compute_delta(value, value_before(series, key, 7)),
            "delta1m": compute_delta(value, value_before(series, key, 30)),
        }
    return {"date": latest.date, "metrics": metrics}
