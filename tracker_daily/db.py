from __future__ import annotations

import hashlib
import json
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from .metrics import METRIC_FIELDS

DB_PATH = os.getenv("DB_PATH", os.path.join(os.path.dirname(__file__), "..", "tracker_daily.db"))


def _connect() -> sqlite3.Connection:
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    return conn


@contextmanager
def db() -> Iterator[sqlite3.Connection]:
    conn = _connect()
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def init_db() -> None:
    metric_columns = ",\n".join(f"              {name} REAL" for name in METRIC_FIELDS)
    with db() as conn:
        # One row per local calendar day; columns mirror DailyMetricRecord.
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS daily_metrics (
              date TEXT PRIMARY KEY,
{metric_columns},
              updated_at TEXT NOT NULL
            );
            """
        )
        # Ingest idempotency ledger (run_id is the payload hash)
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS ingest_runs (
              run_id TEXT PRIMARY KEY,
              received_at TEXT NOT NULL,
              record_count INTEGER NOT NULL,
              day_count INTEGER NOT NULL,
              dropped_count INTEGER NOT NULL DEFAULT 0
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_ingest_runs_received_at ON ingest_runs(received_at);")


def dumps_payload(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"), default=str)


def payload_hash(payload: Any) -> str:
    return hashlib.sha256(dumps_payload(payload).encode("utf-8")).hexdigest()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
