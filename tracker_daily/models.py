from __future__ import annotations

import math
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _mapping(value: Any) -> Any:
    return value if isinstance(value, (dict, BaseModel)) else None


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _finite_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str):
        try:
            n = float(value)
        except ValueError:
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def _whole_number(value: Any) -> int | None:
    n = _finite_number(value)
    return int(n) if n is not None else None


# Exporters send numbers as ints, floats, strings or garbage; anything
# that is not a finite number reads as missing.
Number = Annotated[Optional[float], BeforeValidator(_finite_number)]
Count = Annotated[Optional[int], BeforeValidator(_whole_number)]
Text = Annotated[Optional[str], BeforeValidator(_text)]


class _RawModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class StageSummary(_RawModel):
    total_light_sleep_time_milli: Number = None
    total_slow_wave_sleep_time_milli: Number = None
    total_rem_sleep_time_milli: Number = None


class SleepNeeded(_RawModel):
    need_from_sleep_debt_milli: Number = None


class SleepScore(_RawModel):
    stage_summary: Annotated[Optional[StageSummary], BeforeValidator(_mapping)] = None
    sleep_needed: Annotated[Optional[SleepNeeded], BeforeValidator(_mapping)] = None
    sleep_performance_percentage: Number = None
    respiratory_rate: Number = None


class RecoveryScore(_RawModel):
    recovery_score: Number = None
    resting_heart_rate: Number = None
    hrv_rmssd_milli: Number = None
    skin_temp_celsius: Number = None


class CycleScore(_RawModel):
    strain: Number = None
    kilojoule: Number = None
    steps: Count = None


class SleepEvent(_RawModel):
    start: Text = None
    timezone_offset: Text = None
    score: Annotated[Optional[SleepScore], BeforeValidator(_mapping)] = None


class RecoveryEvent(_RawModel):
    created_at: Text = None
    timezone_offset: Text = None
    score: Annotated[Optional[RecoveryScore], BeforeValidator(_mapping)] = None


class CycleEvent(_RawModel):
    start: Text = None
    timezone_offset: Text = None
    score: Annotated[Optional[CycleScore], BeforeValidator(_mapping)] = None


class RecordCollection(_RawModel):
    # Records stay untyped here so one bad record cannot reject the payload.
    records: Annotated[list[Any], BeforeValidator(_list)] = Field(default_factory=list)


class TrackerPayload(_RawModel):
    sleep_collection: Annotated[Optional[RecordCollection], BeforeValidator(_mapping)] = None
    recovery_collection: Annotated[Optional[RecordCollection], BeforeValidator(_mapping)] = None
    cycle_collection: Annotated[Optional[RecordCollection], BeforeValidator(_mapping)] = None


class DailyMetricRecord(BaseModel):
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    recovery: Optional[float] = None
    sleepPerformance: Optional[float] = None
    sleepHours: Optional[float] = None
    sleepDebtHours: Optional[float] = None
    strain: Optional[float] = None
    hrvRmssd: Optional[float] = None
    rhr: Optional[float] = None
    respiratoryRate: Optional[float] = None
    skinTempC: Optional[float] = None
    caloriesKcal: Optional[float] = None
    steps: Optional[int] = None


class MetricsResponse(BaseModel):
    timeframe: str
    data: list[DailyMetricRecord]


class IngestResponse(BaseModel):
    accepted: bool
    runId: str
    duplicate: bool
    days: int
    upsertedCount: int
    droppedCount: int


class IngestRunInfo(BaseModel):
    runId: str
    receivedAt: str
    recordCount: int
    dayCount: int
    droppedCount: int


class StatusResponse(BaseModel):
    ok: bool
    dbPath: str
    totalDays: int
    firstDate: Optional[str] = None
    lastDate: Optional[str] = None
    lastIngest: Optional[IngestRunInfo] = None
