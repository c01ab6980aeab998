from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from .numeric_utils import as_float, as_int
from .seasons import season_key


WINTER_SPORT_TYPES = frozenset({"AlpineSki", "BackcountrySki", "NordicSki", "Snowboard"})


def parse_start(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        return datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _metric(payload: dict[str, Any], key: str) -> float:
    value = as_float(payload.get(key))
    if value is None or value < 0:
        return 0.0
    return value


@dataclass
class Activity:
    id: str
    name: str
    sport_type: str
    start_date: datetime
    updated_at: str | None
    distance: float = 0.0
    moving_time: float = 0.0
    elapsed_time: float = 0.0
    total_elevation_gain: float = 0.0
    max_speed: float = 0.0
    average_speed: float = 0.0
    run_count: int | None = None
    vertical_drop: float | None = None

    @property
    def season(self) -> str:
        return season_key(self.start_date)

    @property
    def day(self) -> date:
        return self.start_date.date()

    @property
    def is_winter_sport(self) -> bool:
        return self.sport_type in WINTER_SPORT_TYPES

    @classmethod
    def from_strava(cls, payload: dict[str, Any]) -> "Activity | None":
        """Build an activity from a Strava summary/detail payload.

        The local start time is preferred so that calendar days and season
        boundaries follow the wall clock of the mountain, not UTC. Returns
        None for payloads without an id or a parseable start.
        """
        if not isinstance(payload, dict):
            return None
        raw_id = payload.get("id")
        if raw_id in {None, ""}:
            return None
        activity_id = str(raw_id).strip()
        if not activity_id:
            return None

        start = parse_start(payload.get("start_date_local")) or parse_start(payload.get("start_date"))
        if start is None:
            return None

        updated_at = payload.get("updated_at")
        if not isinstance(updated_at, str) or not updated_at.strip():
            updated_at = None

        return cls(
            id=activity_id,
            name=str(payload.get("name") or "").strip(),
            sport_type=str(payload.get("sport_type") or payload.get("type") or "").strip(),
            start_date=start,
            updated_at=updated_at.strip() if updated_at else None,
            distance=_metric(payload, "distance"),
            moving_time=_metric(payload, "moving_time"),
            elapsed_time=_metric(payload, "elapsed_time"),
            total_elevation_gain=_metric(payload, "total_elevation_gain"),
            max_speed=_metric(payload, "max_speed"),
            average_speed=_metric(payload, "average_speed"),
        )


@dataclass(frozen=True)
class EnrichmentRecord:
    activity_id: str
    updated_at: str | None
    run_count: int = 0
    vertical_drop: float = 0.0

    def to_json(self) -> dict[str, Any]:
        return {
            "activityId": self.activity_id,
            "updatedAt": self.updated_at,
            "runCount": self.run_count,
            "verticalDrop": self.vertical_drop,
        }

    @classmethod
    def from_json(cls, item: Any) -> "EnrichmentRecord | None":
        if not isinstance(item, dict):
            return None
        raw_id = item.get("activityId")
        if raw_id in {None, ""}:
            return None
        activity_id = str(raw_id).strip()
        if not activity_id:
            return None

        updated_at = item.get("updatedAt")
        if not isinstance(updated_at, str) or not updated_at.strip():
            updated_at = None

        run_count = as_int(item.get("runCount"))
        vertical_drop = as_float(item.get("verticalDrop"))
        return cls(
            activity_id=activity_id,
            updated_at=updated_at,
            run_count=max(0, run_count or 0),
            vertical_drop=max(0.0, vertical_drop or 0.0),
        )


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one remote call: a value, or an error message.

    A successful result may carry ``value=None`` (e.g. an activity recorded
    without altitude), which is not the same as a failed request.
    """

    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "FetchResult":
        return cls(value=value, error=None)

    @classmethod
    def failure(cls, error: str) -> "FetchResult":
        return cls(value=None, error=str(error) or "unknown error")
