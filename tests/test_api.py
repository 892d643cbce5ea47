from __future__ import annotations

import csv
import importlib
import io
import os
import tempfile
import unittest
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient


def _day(days_ago: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days_ago)).strftime("%Y-%m-%dT12:00:00Z")


def _payload() -> dict:
    return {
        "sleep_collection": {
            "records": [
                {
                    "start": _day(1),
                    "timezone_offset": "+00:00",
                    "score": {
                        "stage_summary": {"total_light_sleep_time_milli": 18_000_000, "total_rem_sleep_time_milli": 7_200_000},
                        "sleep_performance_percentage": 84,
                    },
                }
            ]
        },
        "recovery_collection": {
            "records": [
                {"created_at": _day(1), "timezone_offset": "+00:00", "score": {"recovery_score": 58, "resting_heart_rate": 51}},
                {"created_at": _day(200), "timezone_offset": "+00:00", "score": {"recovery_score": 33}},
                {"created_at": _day(2)},
            ]
        },
        "cycle_collection": {
            "records": [{"start": _day(1), "timezone_offset": "+00:00", "score": {"strain": 13.1, "kilojoule": 8368}}]
        },
    }


class ApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self._tmp.name, "test_api.db")
        self._old_db_path = os.environ.get("DB_PATH")
        self._old_api_key = os.environ.get("API_KEY")
        os.environ["DB_PATH"] = self.db_path
        os.environ["API_KEY"] = "test-api-key"

        import tracker_daily.db as db_mod
        importlib.reload(db_mod)
        import tracker_daily.store as store_mod
        importlib.reload(store_mod)
        import tracker_daily.main as main_mod
        importlib.reload(main_mod)

        self.client_ctx = TestClient(main_mod.app)
        self.client = self.client_ctx.__enter__()
        self.headers = {"X-Api-Key": "test-api-key"}

    def tearDown(self) -> None:
        self.client_ctx.__exit__(None, None, None)
        if self._old_db_path is None:
            os.environ.pop("DB_PATH", None)
        else:
            os.environ["DB_PATH"] = self._old_db_path

        if self._old_api_key is None:
            os.environ.pop("API_KEY", None)
        else:
            os.environ["API_KEY"] = self._old_api_key

        self._tmp.cleanup()

    def test_requires_api_key(self) -> None:
        self.assertEqual(self.client.get("/api/metrics").status_code, 401)
        bad = self.client.get("/api/metrics", headers={"X-Api-Key": "nope"})
        self.assertEqual(bad.status_code, 401)

    def test_missing_server_key_fails_closed(self) -> None:
        os.environ.pop("API_KEY", None)
        r = self.client.get("/api/status", headers=self.headers)
        self.assertEqual(r.status_code, 500)

    def test_ingest_then_query(self) -> None:
        r = self.client.post("/api/ingest", headers=self.headers, json=_payload())
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertTrue(body["accepted"])
        self.assertFalse(body["duplicate"])
        self.assertEqual(body["days"], 2)
        self.assertEqual(body["upsertedCount"], 2)
        self.assertEqual(body["droppedCount"], 1)

        month = self.client.get("/api/metrics?timeframe=1M", headers=self.headers).json()
        self.assertEqual(month["timeframe"], "1M")
        self.assertEqual(len(month["data"]), 1)
        row = month["data"][0]
        self.assertEqual(row["recovery"], 58.0)
        self.assertEqual(row["rhr"], 51.0)
        self.assertEqual(row["sleepHours"], 7.0)
        self.assertAlmostEqual(row["caloriesKcal"], 2000.0, places=1)
        self.assertNotIn("steps", row)
        self.assertNotIn("sleepDebtHours", row)

        everything = self.client.get("/api/metrics?timeframe=All", headers=self.headers).json()
        self.assertEqual(len(everything["data"]), 2)
        self.assertLess(everything["data"][0]["date"], everything["data"][1]["date"])

        unknown = self.client.get("/api/metrics?timeframe=2Y", headers=self.headers).json()
        self.assertEqual(unknown["data"], month["data"])

        default = self.client.get("/api/metrics", headers=self.headers).json()
        self.assertEqual(default["timeframe"], "1M")
        self.assertEqual(default["data"], month["data"])

    def test_duplicate_ingest_is_skipped(self) -> None:
        payload = _payload()
        self.client.post("/api/ingest", headers=self.headers, json=payload)
        again = self.client.post("/api/ingest", headers=self.headers, json=payload).json()
        self.assertTrue(again["duplicate"])
        self.assertEqual(again["upsertedCount"], 0)

        status = self.client.get("/api/status", headers=self.headers).json()
        self.assertEqual(status["totalDays"], 2)
        self.assertEqual(status["lastIngest"]["runId"], again["runId"])
        self.assertEqual(status["lastIngest"]["recordCount"], 5)

    def test_empty_payload(self) -> None:
        r = self.client.post("/api/ingest", headers=self.headers, json={})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["days"], 0)
        for token in ("1D", "1W", "1M", "3M", "1Y", "All", "2Y"):
            data = self.client.get(f"/api/metrics?timeframe={token}", headers=self.headers).json()["data"]
            self.assertEqual(data, [])

    def test_non_object_body_is_rejected(self) -> None:
        r = self.client.post("/api/ingest", headers=self.headers, json=[1, 2, 3])
        self.assertEqual(r.status_code, 422)

    def test_definitions_and_summary(self) -> None:
        defs = self.client.get("/api/metrics/definitions", headers=self.headers).json()["metrics"]
        self.assertEqual(defs[0]["key"], "recovery")
        self.assertEqual(len(defs), 10)

        self.client.post("/api/ingest", headers=self.headers, json=_payload())
        snap = self.client.get("/api/summary?timeframe=All", headers=self.headers).json()
        self.assertEqual(snap["timeframe"], "All")
        self.assertEqual(snap["metrics"]["recovery"]["value"], 58.0)
        self.assertEqual(snap["metrics"]["recovery"]["max"], 58.0)
        self.assertEqual(snap["metrics"]["recovery"]["delta"]["diff"], 25.0)

    def test_export_csv(self) -> None:
        self.client.post("/api/ingest", headers=self.headers, json=_payload())
        r = self.client.get("/api/export.csv", headers=self.headers)
        self.assertEqual(r.status_code, 200)
        rows = list(csv.DictReader(io.StringIO(r.text)))
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0]["recovery"], "33.0")
        self.assertEqual(rows[0]["strain"], "")


if __name__ == "__main__":
    unittest.main()
