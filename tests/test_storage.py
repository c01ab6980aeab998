import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from slopestats.models import EnrichmentRecord
from slopestats.storage import EnrichmentCache, read_json, write_json


class TestJsonHelpers(unittest.TestCase):
    def test_json_round_trip(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "tokens.json"
            payload = {"access_token": "a", "refresh_token": "r"}
            write_json(path, payload)
            self.assertEqual(read_json(path), payload)
            self.assertFalse(path.with_suffix(".tmp").exists())

    def test_read_json_returns_none_for_missing_or_corrupt(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "tokens.json"
            self.assertIsNone(read_json(path))
            path.write_text("{not json", encoding="utf-8")
            self.assertIsNone(read_json(path))


class TestEnrichmentCache(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = Path(self.temp_dir.name) / "enrichment_cache.json"

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_missing_file_loads_empty(self) -> None:
        cache = EnrichmentCache.load(self.path)
        self.assertEqual(len(cache), 0)
        self.assertIsNone(cache.get("1"))

    def test_corrupt_file_loads_empty_with_warning(self) -> None:
        self.path.write_text("[{\"activityId\": ", encoding="utf-8")
        with self.assertLogs("slopestats.storage", level="WARNING"):
            cache = EnrichmentCache.load(self.path)
        self.assertEqual(len(cache), 0)

    def test_non_list_file_loads_empty(self) -> None:
        self.path.write_text(json.dumps({"activityId": "1"}), encoding="utf-8")
        with self.assertLogs("slopestats.storage", level="WARNING"):
            cache = EnrichmentCache.load(self.path)
        self.assertEqual(len(cache), 0)

    def test_load_reads_records_and_skips_malformed_entries(self) -> None:
        self.path.write_text(
            json.dumps(
                [
                    {"activityId": "1", "updatedAt": "2025-01-01T00:00:00Z", "runCount": 4, "verticalDrop": 25},
                    {"activityId": 2, "updatedAt": "2025-01-02T00:00:00Z", "runCount": -3, "verticalDrop": "oops"},
                    {"runCount": 7},
                    "garbage",
                ]
            ),
            encoding="utf-8",
        )
        with self.assertLogs("slopestats.storage", level="WARNING"):
            cache = EnrichmentCache.load(self.path)

        self.assertEqual(len(cache), 2)
        self.assertEqual(
            cache.get(1),
            EnrichmentRecord(activity_id="1", updated_at="2025-01-01T00:00:00Z", run_count=4, vertical_drop=25.0),
        )
        second = cache.get("2")
        assert second is not None
        self.assertEqual(second.run_count, 0)
        self.assertEqual(second.vertical_drop, 0.0)

    def test_put_overwrites_and_stays_in_memory_until_persist(self) -> None:
        cache = EnrichmentCache.load(self.path)
        cache.put("1", EnrichmentRecord("1", "2025-01-01T00:00:00Z", 3, 10.0))
        cache.put("1", EnrichmentRecord("1", "2025-01-02T00:00:00Z", 5, 12.5))

        self.assertTrue(cache.dirty)
        self.assertFalse(self.path.exists())
        record = cache.get("1")
        assert record is not None
        self.assertEqual(record.run_count, 5)

        self.assertTrue(cache.persist())
        self.assertFalse(cache.dirty)
        saved = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(
            saved,
            [{"activityId": "1", "updatedAt": "2025-01-02T00:00:00Z", "runCount": 5, "verticalDrop": 12.5}],
        )

    def test_discard_removes_only_named_record(self) -> None:
        cache = EnrichmentCache(self.path)
        cache.put("1", EnrichmentRecord("1", "2025-01-01T00:00:00Z", 3, 10.0))
        cache.put("2", EnrichmentRecord("2", "2025-01-02T00:00:00Z", 4, 20.0))
        cache.persist()

        cache.discard("missing")
        self.assertFalse(cache.dirty)

        cache.discard(1)
        self.assertTrue(cache.dirty)
        self.assertIsNone(cache.get("1"))
        self.assertIsNotNone(cache.get("2"))

    def test_persist_then_load_keeps_records(self) -> None:
        cache = EnrichmentCache(self.path)
        cache.put("20", EnrichmentRecord("20", "2025-02-01T00:00:00Z", 2, 300.0))
        cache.put("10", EnrichmentRecord("10", "2025-01-01T00:00:00Z", 1, 150.0))
        cache.persist()

        reloaded = EnrichmentCache.load(self.path)
        self.assertEqual([record.activity_id for record in reloaded.records()], ["10", "20"])
        self.assertIsNotNone(reloaded.get("20"))

    def test_failed_persist_leaves_previous_file_untouched(self) -> None:
        original = [{"activityId": "1", "updatedAt": "2025-01-01T00:00:00Z", "runCount": 4, "verticalDrop": 25}]
        self.path.write_text(json.dumps(original), encoding="utf-8")
        cache = EnrichmentCache.load(self.path)
        cache.put("1", EnrichmentRecord("1", "2025-01-05T00:00:00Z", 9, 999.0))

        with mock.patch("pathlib.Path.replace", side_effect=OSError("disk full")):
            with self.assertLogs("slopestats.storage", level="WARNING"):
                self.assertFalse(cache.persist())

        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), original)
        self.assertFalse(self.path.with_suffix(".tmp").exists())
        self.assertTrue(cache.dirty)


if __name__ == "__main__":
    unittest.main()
