"""Metrics store lifecycle tests."""
import asyncio
import os
import shutil
import tempfile
import unittest
from dataclasses import replace
from pathlib import Path

from core.data import MOCK_MONTHLY_DATA, AchievementPolicy, records_to_frame
from core.sources import FailingMonthlyRecordSource, FileMonthlyRecordSource, MockMonthlyRecordSource, default_source
from core.store import LoadStatus, MetricsStore


class TestMetricsStore(unittest.IsolatedAsyncioTestCase):

    async def test_initial_state(self):
        store = MetricsStore(MockMonthlyRecordSource(delay=0))
        self.assertEqual(store.records, ())
        self.assertEqual(store.status, LoadStatus.IDLE)
        self.assertIsNone(store.error)
        self.assertFalse(store.is_loading)

    async def test_load_success(self):
        store = MetricsStore(MockMonthlyRecordSource(delay=0))
        result = await store.load()
        self.assertTrue(result.ok)
        self.assertEqual(store.status, LoadStatus.IDLE)
        self.assertEqual(len(store.records), 12)
        self.assertEqual(result.records, store.records)
        self.assertEqual(store.months[0], "4")
        self.assertEqual(store.get(3).actual_sales, 110000000)
        self.assertIsNone(store.get("13"))

    async def test_first_load_failure_leaves_empty_sequence(self):
        store = MetricsStore(FailingMonthlyRecordSource("boom"))
        result = await store.load()
        self.assertFalse(result.ok)
        self.assertEqual(result.error, "boom")
        self.assertEqual(store.status, LoadStatus.ERROR)
        self.assertEqual(store.error, "boom")
        self.assertEqual(store.records, ())

    async def test_failure_keeps_previous_records(self):
        calls = {"n": 0}

        async def fetch():
            calls["n"] += 1
            if calls["n"] > 1:
                raise ValueError("upstream unavailable")
            return MOCK_MONTHLY_DATA[:3]

        store = MetricsStore(fetch)
        await store.load()
        await store.load()
        self.assertEqual(store.status, LoadStatus.ERROR)
        self.assertEqual(store.error, "upstream unavailable")
        self.assertEqual(store.records, MOCK_MONTHLY_DATA[:3])

    async def test_exception_without_message(self):
        async def fetch():
            raise RuntimeError()

        store = MetricsStore(fetch)
        await store.load()
        self.assertEqual(store.error, "RuntimeError")

    async def test_loading_state_and_error_cleared(self):
        release = asyncio.Event()
        should_fail = {"value": True}

        async def fetch():
            if should_fail["value"]:
                raise ValueError("first")
            await release.wait()
            return MOCK_MONTHLY_DATA

        store = MetricsStore(fetch)
        await store.load()
        self.assertEqual(store.error, "first")

        should_fail["value"] = False
        task = asyncio.create_task(store.load())
        await asyncio.sleep(0)
        self.assertEqual(store.status, LoadStatus.LOADING)
        self.assertTrue(store.is_loading)
        self.assertIsNone(store.error)
        release.set()
        await task
        self.assertEqual(store.status, LoadStatus.IDLE)
        self.assertEqual(len(store.records), 12)

    async def test_last_settled_load_wins(self):
        slow_release = asyncio.Event()
        calls = {"n": 0}

        async def fetch():
            calls["n"] += 1
            if calls["n"] == 1:
                await slow_release.wait()
                return MOCK_MONTHLY_DATA[:1]
            return MOCK_MONTHLY_DATA[:2]

        store = MetricsStore(fetch)
        slow = asyncio.create_task(store.load())
        await asyncio.sleep(0)
        await store.load()
        self.assertEqual(len(store.records), 2)
        slow_release.set()
        await slow
        self.assertEqual(len(store.records), 1)
        self.assertEqual(store.status, LoadStatus.IDLE)

    async def test_recompute_policy(self):
        drifted = replace(MOCK_MONTHLY_DATA[0], sales_achievement=50.0)
        store = MetricsStore(MockMonthlyRecordSource([drifted], delay=0), policy=AchievementPolicy.RECOMPUTE)
        await store.load()
        self.assertEqual(store.records[0].sales_achievement, 106.3)

    async def test_plain_source_object(self):
        class PlainSource:
            async def fetch_monthly_records(self):
                return MOCK_MONTHLY_DATA[:4]

        store = MetricsStore(PlainSource())
        await store.load()
        self.assertEqual(len(store.records), 4)

    async def test_mock_source_delay(self):
        source = MockMonthlyRecordSource(delay=0.01)
        records = await source()
        self.assertEqual(records, MOCK_MONTHLY_DATA)

    async def test_default_source_prefers_data_file(self):
        temp_dir = Path(tempfile.mkdtemp())
        try:
            self.assertIsInstance(default_source(temp_dir), MockMonthlyRecordSource)
            records_to_frame(MOCK_MONTHLY_DATA[:2]).to_csv(temp_dir / "monthly_records.csv", index=False)
            source = default_source(temp_dir)
            self.assertIsInstance(source, FileMonthlyRecordSource)
            store = MetricsStore(source)
            await store.load()
            self.assertEqual(store.records, MOCK_MONTHLY_DATA[:2])
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    async def test_default_source_picks_most_recently_modified_file(self):
        temp_dir = Path(tempfile.mkdtemp())
        try:
            older = temp_dir / "monthly_records_b.csv"
            newer = temp_dir / "monthly_records_a.csv"
            records_to_frame(MOCK_MONTHLY_DATA[:3]).to_csv(older, index=False)
            records_to_frame(MOCK_MONTHLY_DATA[:1]).to_csv(newer, index=False)
            os.utime(older, (1_600_000_000, 1_600_000_000))
            os.utime(newer, (1_700_000_000, 1_700_000_000))
            source = default_source(temp_dir)
            self.assertEqual(source.path, newer)
            store = MetricsStore(source)
            await store.load()
            self.assertEqual(store.records, MOCK_MONTHLY_DATA[:1])
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    async def test_missing_data_file(self):
        store = MetricsStore(FileMonthlyRecordSource(Path("/nonexistent/monthly_records.csv")))
        await store.load()
        self.assertEqual(store.status, LoadStatus.ERROR)
        self.assertIn("Data file not found", store.error)


if __name__ == "__main__":
    unittest.main()
