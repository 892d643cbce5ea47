"""Per-source extractors: one raw tracker record in, one day fragment out.

Every extractor returns ``None`` for records that cannot be placed on a day
or have no score yet (in-progress sleeps and cycles are common in exports).
Those records are skipped, not reported as errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from .daykey import day_key_from
from .metrics import KCAL_PER_KJ, MS_PER_HOUR
from .models import CycleEvent, RecoveryEvent, SleepEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fragment:
    day: str
    values: dict[str, float] = field(default_factory=dict)


def _present(**values: Optional[float]) -> dict[str, float]:
    return {k: v for k, v in values.items() if v is not None}


def _validate(model: type[BaseModel], raw: Any) -> Any:
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.debug("skip %s record: %s", model.__name__, e.error_count())
        return None


def extract_sleep(raw: Any) -> Fragment | None:
    event = _validate(SleepEvent, raw)
    if event is None:
        return None
    day = day_key_from(event.start, event.timezone_offset)
    if not day or event.score is None:
        return None
    score = event.score

    stage = score.stage_summary
    total_ms = 0.0
    if stage is not None:
        total_ms = (
            (stage.total_light_sleep_time_milli or 0)
            + (stage.total_slow_wave_sleep_time_milli or 0)
            + (stage.total_rem_sleep_time_milli or 0)
        )
    # A non-positive total means the stages were not scored, not that nobody slept.
    sleep_hours = total_ms / MS_PER_HOUR if total_ms > 0 else None

    debt_ms = score.sleep_needed.need_from_sleep_debt_milli if score.sleep_needed else None
    sleep_debt_hours = max(0.0, debt_ms / MS_PER_HOUR) if debt_ms else None

    return Fragment(
        day,
        _present(
            sleepPerformance=score.sleep_performance_percentage,
            sleepHours=sleep_hours,
            sleepDebtHours=sleep_debt_hours,
            respiratoryRate=score.respiratory_rate,
        ),
    )


def extract_recovery(raw: Any) -> Fragment | None:
    event = _validate(RecoveryEvent, raw)
    if event is None:
        return None
    day = day_key_from(event.created_at, event.timezone_offset)
    if not day or event.score is None:
        return None
    score = event.score
    return Fragment(
        day,
        _present(
            recovery=score.recovery_score,
            rhr=score.resting_heart_rate,
            hrvRmssd=score.hrv_rmssd_milli,
            skinTempC=score.skin_temp_celsius,
        ),
    )


def extract_cycle(raw: Any) -> Fragment | None:
    event = _validate(CycleEvent, raw)
    if event is None:
        return None
    day = day_key_from(event.start, event.timezone_offset)
    if not day or event.score is None:
        return None
    score = event.score
    calories = score.kilojoule * KCAL_PER_KJ if score.kilojoule else None
    return Fragment(
        day,
        _present(
            strain=score.strain,
            caloriesKcal=calories,
            steps=score.steps,
        ),
    )


Extractor = Callable[[Any], Optional[Fragment]]

# Collection name -> extractor, in merge order.
EXTRACTORS: tuple[tuple[str, Extractor], ...] = (
    ("sleep_collection", extract_sleep),
    ("recovery_collection", extract_recovery),
    ("cycle_collection", extract_cycle),
)
