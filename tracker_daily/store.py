from __future__ import annotations

import logging
from typing import Sequence

from .db import db, now_iso
from .metrics import METRIC_FIELDS
from .models import DailyMetricRecord, IngestRunInfo

logger = logging.getLogger(__name__)

_COLUMNS = ", ".join(("date",) + METRIC_FIELDS + ("updated_at",))
_PLACEHOLDERS = ", ".join(f":{c}" for c in ("date",) + METRIC_FIELDS + ("updated_at",))
# Absent values in a run never clobber what earlier runs stored for that day.
_UPDATES = ",\n              ".join(
    f"{c}=COALESCE(excluded.{c}, daily_metrics.{c})" for c in METRIC_FIELDS
)

_UPSERT_SQL = f"""
            INSERT INTO daily_metrics({_COLUMNS})
            VALUES({_PLACEHOLDERS})
            ON CONFLICT(date) DO UPDATE SET
              {_UPDATES},
              updated_at=excluded.updated_at
            """


def upsert_series(series: Sequence[DailyMetricRecord]) -> int:
    updated_at = now_iso()
    rows = [{**r.model_dump(), "updated_at": updated_at} for r in series]
    if not rows:
        return 0
    with db() as conn:
        conn.executemany(_UPSERT_SQL, rows)
    logger.info("upserted %d daily rows", len(rows))
    return len(rows)


def load_series() -> list[DailyMetricRecord]:
    with db() as conn:
        rows = conn.execute(f"SELECT date, {', '.join(METRIC_FIELDS)} FROM daily_metrics ORDER BY date ASC").fetchall()
    return [DailyMetricRecord(**dict(r)) for r in rows]


def count_days() -> tuple[int, str | None, str | None]:
    with db() as conn:
        row = conn.execute(
            "SELECT COUNT(*) AS c, MIN(date) AS first, MAX(date) AS last FROM daily_metrics"
        ).fetchone()
    return int(row["c"]), row["first"], row["last"]


def _run_info(row) -> IngestRunInfo:
    return IngestRunInfo(
        runId=row["run_id"],
        receivedAt=row["received_at"],
        recordCount=int(row["record_count"]),
        dayCount=int(row["day_count"]),
        droppedCount=int(row["dropped_count"]),
    )


def get_ingest_run(run_id: str) -> IngestRunInfo | None:
    with db() as conn:
        row = conn.execute("SELECT * FROM ingest_runs WHERE run_id = ?", (run_id,)).fetchone()
    return _run_info(row) if row else None


def last_ingest_run() -> IngestRunInfo | None:
    with db() as conn:
        row = conn.execute("SELECT * FROM ingest_runs ORDER BY received_at DESC LIMIT 1").fetchone()
    return _run_info(row) if row else None


def record_ingest_run(*, run_id: str, record_count: int, day_count: int, dropped_count: int) -> bool:
    """Register a run. False when the same payload was already ingested."""
    with db() as conn:
        cur = conn.execute(
            """
            INSERT OR IGNORE INTO ingest_runs(run_id, received_at, record_count, day_count, dropped_count)
            VALUES(?,?,?,?,?)
            """,
            (run_id, now_iso(), record_count, day_count, dropped_count),
        )
    return cur.rowcount > 0
