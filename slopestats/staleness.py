from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .models import Activity
from .storage import EnrichmentCache


MISSING_RECORD = "missing_record"
MISSING_TIMESTAMP = "missing_timestamp"
UNPARSEABLE_TIMESTAMP = "unparseable_timestamp"
UPDATED_UPSTREAM = "updated_upstream"


def parse_utc(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def stale_reason(activity: Activity, cache: EnrichmentCache) -> str | None:
    """Why the cached enrichment for ``activity`` cannot be reused, if at all.

    Checks run in a fixed order and every doubtful case resolves toward
    recomputation. Equal timestamps mean the record is still valid.
    """
    record = cache.get(activity.id)
    if record is None:
        return MISSING_RECORD

    if not activity.updated_at or not record.updated_at:
        return MISSING_TIMESTAMP

    current = parse_utc(activity.updated_at)
    cached = parse_utc(record.updated_at)
    if current is None or cached is None:
        return UNPARSEABLE_TIMESTAMP

    if current > cached:
        return UPDATED_UPSTREAM
    return None


def is_stale(activity: Activity, cache: EnrichmentCache) -> bool:
    return stale_reason(activity, cache) is not None
