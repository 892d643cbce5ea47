from __future__ import annotations

import csv
import io
import logging
import os
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Response

from .db import DB_PATH, init_db, payload_hash
from .merge import build_series_report
from .metrics import METRIC_DEFINITIONS, METRIC_FIELDS
from .models import DailyMetricRecord, IngestResponse, MetricsResponse, StatusResponse
from .security import require_api_key
from .store import (
    count_days,
    get_ingest_run,
    last_ingest_run,
    load_series,
    record_ingest_run,
    upsert_series,
)
from .summary import build_snapshot
from .timeframe import filter_by_timeframe

logger = logging.getLogger(__name__)

DEFAULT_TIMEFRAME = os.getenv("DEFAULT_TIMEFRAME", "1M")

app = FastAPI(title="Tracker Daily Metrics Bridge", version="0.1.0")


@app.on_event("startup")
def _startup() -> None:
    init_db()


def _windowed(timeframe: str) -> list[DailyMetricRecord]:
    return filter_by_timeframe(load_series(), timeframe, now=datetime.now(timezone.utc))


@app.post("/api/ingest", response_model=IngestResponse)
def ingest(payload: dict[str, Any], _: None = Depends(require_api_key)) -> IngestResponse:
    run_id = payload_hash(payload)
    series, stats = build_series_report(payload)

    duplicate = get_ingest_run(run_id) is not None
    upserted = 0
    if duplicate:
        logger.info("ingest %s already applied; skipping upsert", run_id[:12])
    else:
        upserted = upsert_series(series)
        record_ingest_run(
            run_id=run_id,
            record_count=stats.record_count,
            day_count=len(series),
            dropped_count=stats.dropped_count,
        )

    return IngestResponse(
        accepted=True,
        runId=run_id,
        duplicate=duplicate,
        days=len(series),
        upsertedCount=upserted,
        droppedCount=stats.dropped_count,
    )


@app.get(
    "/api/metrics",
    response_model=MetricsResponse,
    response_model_exclude_none=True,
)
def metrics(timeframe: str = DEFAULT_TIMEFRAME, _: None = Depends(require_api_key)) -> MetricsResponse:
    return MetricsResponse(timeframe=timeframe, data=_windowed(timeframe))


@app.get("/api/metrics/definitions")
def metric_definitions(_: None = Depends(require_api_key)) -> dict[str, Any]:
    return {"metrics": [asdict(d) for d in METRIC_DEFINITIONS]}


@app.get("/api/summary")
def summary(timeframe: str = DEFAULT_TIMEFRAME, _: None = Depends(require_api_key)) -> dict[str, Any]:
    return {"timeframe": timeframe, **build_snapshot(_windowed(timeframe))}


@app.get("/api/status", response_model=StatusResponse)
def status(_: None = Depends(require_api_key)) -> StatusResponse:
    total, first, last = count_days()
    return StatusResponse(
        ok=True,
        dbPath=str(DB_PATH),
        totalDays=total,
        firstDate=first,
        lastDate=last,
        lastIngest=last_ingest_run(),
    )


@app.get("/api/export.csv")
def export_csv(timeframe: str = "All", _: None = Depends(require_api_key)) -> Response:
    out = io.StringIO()
    w = csv.writer(out)
    w.writerow(("date",) + METRIC_FIELDS)
    for r in _windowed(timeframe):
        row = r.model_dump()
        w.writerow([row["date"]] + ["" if row[c] is None else row[c] for c in METRIC_FIELDS])

    return Response(content=out.getvalue(), media_type="text/csv")
