from __future__ import annotations

import importlib
import os
import tempfile
import unittest

from tracker_daily.models import DailyMetricRecord


class StoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self._tmp.name, "test_store.db")
        self._old_db_path = os.environ.get("DB_PATH")
        os.environ["DB_PATH"] = self.db_path

        import tracker_daily.db as db_mod
        importlib.reload(db_mod)
        import tracker_daily.store as store_mod
        importlib.reload(store_mod)

        db_mod.init_db()
        self.db_mod = db_mod
        self.store_mod = store_mod

    def tearDown(self) -> None:
        if self._old_db_path is None:
            os.environ.pop("DB_PATH", None)
        else:
            os.environ["DB_PATH"] = self._old_db_path
        self._tmp.cleanup()

    def test_upsert_and_load_in_date_order(self) -> None:
        n = self.store_mod.upsert_series(
            [
                DailyMetricRecord(date="2024-03-02", recovery=70.0, steps=9000),
                DailyMetricRecord(date="2024-03-01", sleepHours=7.5),
            ]
        )
        self.assertEqual(n, 2)
        loaded = self.store_mod.load_series()
        self.assertEqual([r.date for r in loaded], ["2024-03-01", "2024-03-02"])
        self.assertEqual(loaded[0].sleepHours, 7.5)
        self.assertIsNone(loaded[0].recovery)
        self.assertEqual(loaded[1].steps, 9000)

    def test_absent_fields_do_not_clobber_stored_values(self) -> None:
        self.store_mod.upsert_series([DailyMetricRecord(date="2024-03-01", recovery=50.0, rhr=48.0)])
        self.store_mod.upsert_series([DailyMetricRecord(date="2024-03-01", recovery=62.0, strain=8.0)])

        (row,) = self.store_mod.load_series()
        self.assertEqual(row.recovery, 62.0)
        self.assertEqual(row.rhr, 48.0)
        self.assertEqual(row.strain, 8.0)

    def test_upsert_is_idempotent(self) -> None:
        series = [DailyMetricRecord(date="2024-03-01", recovery=50.0)]
        self.store_mod.upsert_series(series)
        self.store_mod.upsert_series(series)
        self.assertEqual(self.store_mod.count_days(), (1, "2024-03-01", "2024-03-01"))

    def test_empty_series(self) -> None:
        self.assertEqual(self.store_mod.upsert_series([]), 0)
        self.assertEqual(self.store_mod.load_series(), [])
        self.assertEqual(self.store_mod.count_days(), (0, None, None))

    def test_ingest_run_ledger(self) -> None:
        self.assertIsNone(self.store_mod.last_ingest_run())
        first = self.store_mod.record_ingest_run(run_id="abc", record_count=5, day_count=2, dropped_count=1)
        again = self.store_mod.record_ingest_run(run_id="abc", record_count=5, day_count=2, dropped_count=1)
        self.assertTrue(first)
        self.assertFalse(again)

        run = self.store_mod.get_ingest_run("abc")
        self.assertEqual(run.recordCount, 5)
        self.assertEqual(run.droppedCount, 1)
        self.assertEqual(self.store_mod.last_ingest_run().runId, "abc")
        self.assertIsNone(self.store_mod.get_ingest_run("missing"))

    def test_payload_hash_ignores_key_order(self) -> None:
        a = {"sleep_collection": {"records": []}, "cycle_collection": {"records": [{"x": 1}]}}
        b = {"cycle_collection": {"records": [{"x": 1}]}, "sleep_collection": {"records": []}}
        self.assertEqual(self.db_mod.payload_hash(a), self.db_mod.payload_hash(b))


if __name__ == "__main__":
    unittest.main()
