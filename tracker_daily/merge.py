from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from functools import reduce
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from .extractors import EXTRACTORS, Fragment
from .metrics import METRIC_FIELDS
from .models import DailyMetricRecord, TrackerPayload

logger = logging.getLogger(__name__)

DayMap = Mapping[str, Mapping[str, float]]


@dataclass
class IngestStats:
    seen: dict[str, int] = field(default_factory=dict)
    dropped: dict[str, int] = field(default_factory=dict)

    @property
    def record_count(self) -> int:
        return sum(self.seen.values())

    @property
    def dropped_count(self) -> int:
        return sum(self.dropped.values())


def merge_fragment(acc: DayMap, fragment: Fragment) -> dict[str, dict[str, float]]:
    """Fold one fragment into a day map without touching ``acc``.

    Fields present in the fragment overwrite that day's values; fields it
    lacks keep whatever earlier fragments put there.
    """
    merged = dict(acc)
    merged[fragment.day] = {**merged.get(fragment.day, {}), **fragment.values}
    return merged


def _merge_into(acc: dict[str, dict[str, float]], fragment: Fragment) -> dict[str, dict[str, float]]:
    # acc is owned by merge_fragments; only the touched day is rebuilt.
    acc[fragment.day] = {**acc.get(fragment.day, {}), **fragment.values}
    return acc


def merge_fragments(
    fragments: Iterable[Fragment], initial: Optional[DayMap] = None
) -> dict[str, dict[str, float]]:
    return reduce(_merge_into, fragments, dict(initial or {}))


def _coerce_payload(payload: Any) -> TrackerPayload:
    if isinstance(payload, TrackerPayload):
        return payload
    if not payload:
        return TrackerPayload()
    try:
        return TrackerPayload.model_validate(payload)
    except ValidationError:
        logger.warning("payload is not an object; treating as empty")
        return TrackerPayload()


def collect_fragments(payload: Any, stats: Optional[IngestStats] = None) -> list[Fragment]:
    p = _coerce_payload(payload)
    out: list[Fragment] = []
    for name, extractor in EXTRACTORS:
        collection = getattr(p, name)
        records = collection.records if collection is not None else []
        dropped = 0
        for raw in records:
            fragment = extractor(raw)
            if fragment is None:
                dropped += 1
                continue
            out.append(fragment)
        if stats is not None:
            stats.seen[name] = len(records)
            stats.dropped[name] = dropped
        if dropped:
            logger.debug("%s: dropped %d of %d records", name, dropped, len(records))
    return out


def _clean(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def to_record(day: str, values: Mapping[str, float]) -> DailyMetricRecord:
    fields = {k: _clean(values.get(k)) for k in METRIC_FIELDS}
    return DailyMetricRecord(date=day, **fields)


def series_from_day_map(day_map: DayMap) -> list[DailyMetricRecord]:
    days = sorted(day_map.keys(), key=date.fromisoformat)
    return [to_record(day, day_map[day]) for day in days]


def build_series_report(payload: Any) -> tuple[list[DailyMetricRecord], IngestStats]:
    stats = IngestStats()
    day_map = merge_fragments(collect_fragments(payload, stats))
    series = series_from_day_map(day_map)
    logger.info(
        "built %d days from %d records (%d dropped)",
        len(series),
        stats.record_count,
        stats.dropped_count,
    )
    return series, stats


def build_series(payload: Any = None) -> list[DailyMetricRecord]:
    series, _ = build_series_report(payload)
    return series
