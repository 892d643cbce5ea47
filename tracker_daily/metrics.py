from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MetricDefinition:
    key: str
    label: str
    unit: str
    description: str


# Dashboard order.
METRIC_DEFINITIONS: tuple[MetricDefinition, ...] = (
    MetricDefinition("recovery", "Recovery", "%", "Readiness for strain."),
    MetricDefinition("sleepPerformance", "Sleep", "%", "Sleep performance score."),
    MetricDefinition("sleepHours", "Sleep Hours", "h", "Total sleep time."),
    MetricDefinition("strain", "Strain", "", "Daily exertion score."),
    MetricDefinition("hrvRmssd", "HRV", "ms", "Heart rate variability."),
    MetricDefinition("rhr", "RHR", "bpm", "Resting heart rate."),
    MetricDefinition("respiratoryRate", "Respiratory Rate", "rpm", "Breaths per minute."),
    MetricDefinition("skinTempC", "Skin Temp", "°C", "Skin temperature."),
    MetricDefinition("caloriesKcal", "Calories", "kcal", "Calories burned."),
    MetricDefinition("steps", "Steps", "", "Step count."),
)

METRIC_KEYS: tuple[str, ...] = tuple(d.key for d in METRIC_DEFINITIONS)

# Every per-day field a DailyMetricRecord carries, in storage column order.
METRIC_FIELDS: tuple[str, ...] = (
    "recovery",
    "sleepPerformance",
    "sleepHours",
    "sleepDebtHours",
    "strain",
    "hrvRmssd",
    "rhr",
    "respiratoryRate",
    "skinTempC",
    "caloriesKcal",
    "steps",
)

MS_PER_HOUR = 3_600_000
KCAL_PER_KJ = 0.239006
