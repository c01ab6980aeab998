from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Iterable

from .numeric_utils import meters_to_km, mps_to_kmh, safe_div, seconds_to_hours

if TYPE_CHECKING:
    from .models import Activity


SEASON_START_MONTH = 7
_SEASON_KEY_RE = re.compile(r"^(\d{4})-(\d{4})$")


def season_key(value: datetime | date) -> str:
    year = value.year
    if value.month >= SEASON_START_MONTH:
        return f"{year}-{year + 1}"
    return f"{year - 1}-{year}"


def is_season_key(text: object) -> bool:
    if not isinstance(text, str):
        return False
    match = _SEASON_KEY_RE.match(text.strip())
    if not match:
        return False
    return int(match.group(2)) == int(match.group(1)) + 1


def filter_by_season(activities: Iterable["Activity"], season: str | None) -> list["Activity"]:
    if not season:
        return list(activities)
    return [activity for activity in activities if activity.season == season]


@dataclass(frozen=True)
class SeasonSummary:
    season: str
    days: int
    activity_count: int
    run_count: int

    distance_km: float
    distance_km_per_day: float
    distance_km_per_activity: float

    vertical_drop_km: float
    vertical_drop_m_per_day: int
    vertical_drop_m_per_activity: int
    vertical_drop_m_per_run: int

    elevation_gain_m: int
    elevation_gain_m_per_day: int
    elevation_gain_m_per_activity: int

    moving_time_h: float
    moving_time_h_per_day: float
    moving_time_h_per_activity: float
    elapsed_time_h: float
    elapsed_time_h_per_day: float
    elapsed_time_h_per_activity: float

    max_speed_kmh: float
    avg_max_speed_kmh: float
    avg_speed_kmh: float

    runs_per_day: float
    runs_per_activity: float

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _new_bucket() -> dict[str, Any]:
    return {
        "days": set(),
        "activity_count": 0,
        "run_count": 0,
        "distance": 0.0,
        "vertical_drop": 0.0,
        "elevation_gain": 0.0,
        "moving_time": 0.0,
        "elapsed_time": 0.0,
        "max_speed": 0.0,
        "max_speed_sum": 0.0,
        "average_speed_sum": 0.0,
    }


def _summarize_bucket(season: str, bucket: dict[str, Any]) -> SeasonSummary:
    days = len(bucket["days"])
    count = int(bucket["activity_count"])
    runs = int(bucket["run_count"])
    distance = float(bucket["distance"])
    drop = float(bucket["vertical_drop"])
    gain = float(bucket["elevation_gain"])
    moving = float(bucket["moving_time"])
    elapsed = float(bucket["elapsed_time"])

    return SeasonSummary(
        season=season,
        days=days,
        activity_count=count,
        run_count=runs,
        distance_km=meters_to_km(distance),
        distance_km_per_day=meters_to_km(safe_div(distance, days)),
        distance_km_per_activity=meters_to_km(safe_div(distance, count)),
        vertical_drop_km=meters_to_km(drop),
        vertical_drop_m_per_day=round(safe_div(drop, days)),
        vertical_drop_m_per_activity=round(safe_div(drop, count)),
        vertical_drop_m_per_run=round(safe_div(drop, runs)),
        elevation_gain_m=round(gain),
        elevation_gain_m_per_day=round(safe_div(gain, days)),
        elevation_gain_m_per_activity=round(safe_div(gain, count)),
        moving_time_h=seconds_to_hours(moving),
        moving_time_h_per_day=seconds_to_hours(safe_div(moving, days)),
        moving_time_h_per_activity=seconds_to_hours(safe_div(moving, count)),
        elapsed_time_h=seconds_to_hours(elapsed),
        elapsed_time_h_per_day=seconds_to_hours(safe_div(elapsed, days)),
        elapsed_time_h_per_activity=seconds_to_hours(safe_div(elapsed, count)),
        max_speed_kmh=mps_to_kmh(bucket["max_speed"]),
        avg_max_speed_kmh=mps_to_kmh(safe_div(bucket["max_speed_sum"], count)),
        avg_speed_kmh=mps_to_kmh(safe_div(bucket["average_speed_sum"], count)),
        runs_per_day=round(safe_div(runs, days), 1),
        runs_per_activity=round(safe_div(runs, count), 1),
    )


def aggregate_seasons(activities: Iterable["Activity"]) -> list[SeasonSummary]:
    """Group enriched activities by season and summarize each group.

    Newest season first. Activities without enrichment count as zero runs and
    zero descent.
    """
    buckets: dict[str, dict[str, Any]] = defaultdict(_new_bucket)
    for activity in activities:
        bucket = buckets[activity.season]
        bucket["days"].add(activity.day)
        bucket["activity_count"] += 1
        bucket["run_count"] += int(activity.run_count or 0)
        bucket["distance"] += activity.distance
        bucket["vertical_drop"] += float(activity.vertical_drop or 0.0)
        bucket["elevation_gain"] += activity.total_elevation_gain
        bucket["moving_time"] += activity.moving_time
        bucket["elapsed_time"] += activity.elapsed_time
        bucket["max_speed"] = max(bucket["max_speed"], activity.max_speed)
        bucket["max_speed_sum"] += activity.max_speed
        bucket["average_speed_sum"] += activity.average_speed

    return [
        _summarize_bucket(season, buckets[season])
        for season in sorted(buckets, reverse=True)
    ]
