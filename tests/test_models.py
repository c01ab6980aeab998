import unittest
from datetime import datetime

from slopestats.models import Activity, EnrichmentRecord, FetchResult


class TestActivityFromStrava(unittest.TestCase):
    def test_builds_activity_from_summary_payload(self) -> None:
        activity = Activity.from_strava(
            {
                "id": 1,
                "name": " Powder day ",
                "sport_type": "Snowboard",
                "start_date": "2025-01-01T08:00:00Z",
                "start_date_local": "2025-01-01T09:00:00Z",
                "updated_at": "2025-01-01T00:00:00Z",
                "distance": 5000,
                "elapsed_time": 3600,
                "moving_time": 3000,
                "max_speed": 10,
                "average_speed": 5,
                "total_elevation_gain": 200,
            }
        )
        assert activity is not None
        self.assertEqual(activity.id, "1")
        self.assertEqual(activity.name, "Powder day")
        self.assertEqual(activity.start_date.hour, 9)
        self.assertEqual(activity.season, "2024-2025")
        self.assertEqual(activity.distance, 5000.0)
        self.assertEqual(activity.total_elevation_gain, 200.0)
        self.assertTrue(activity.is_winter_sport)
        self.assertIsNone(activity.run_count)

    def test_falls_back_to_type_and_utc_start(self) -> None:
        activity = Activity.from_strava({"id": "7", "type": "NordicSki", "start_date": "2024-07-01T06:00:00Z"})
        assert activity is not None
        self.assertEqual(activity.sport_type, "NordicSki")
        self.assertEqual(activity.season, "2024-2025")
        self.assertIsNone(activity.updated_at)
        self.assertEqual(activity.max_speed, 0.0)

    def test_rejects_payloads_without_id_or_start(self) -> None:
        self.assertIsNone(Activity.from_strava({"start_date": "2025-01-01T00:00:00Z"}))
        self.assertIsNone(Activity.from_strava({"id": 1, "start_date": "soon"}))
        self.assertIsNone(Activity.from_strava("not a dict"))

    def test_run_is_not_winter_sport(self) -> None:
        activity = Activity("1", "", "Run", datetime(2025, 1, 1), None)
        self.assertFalse(activity.is_winter_sport)


class TestEnrichmentRecord(unittest.TestCase):
    def test_json_shape(self) -> None:
        record = EnrichmentRecord("1", "2025-01-01T00:00:00Z", run_count=4, vertical_drop=25.0)
        self.assertEqual(
            record.to_json(),
            {"activityId": "1", "updatedAt": "2025-01-01T00:00:00Z", "runCount": 4, "verticalDrop": 25.0},
        )
        self.assertEqual(EnrichmentRecord.from_json(record.to_json()), record)

    def test_from_json_rejects_entries_without_id(self) -> None:
        self.assertIsNone(EnrichmentRecord.from_json({"activityId": "  "}))
        self.assertIsNone(EnrichmentRecord.from_json([]))


class TestFetchResult(unittest.TestCase):
    def test_success_may_carry_no_value(self) -> None:
        result = FetchResult.success(None)
        self.assertTrue(result.ok)
        self.assertIsNone(result.value)

    def test_failure_carries_error(self) -> None:
        result = FetchResult.failure("HTTP 500")
        self.assertFalse(result.ok)
        self.assertEqual(result.error, "HTTP 500")


if __name__ == "__main__":
    unittest.main()
