from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Iterable

from .elevation import vertical_drop
from .models import Activity, EnrichmentRecord, FetchResult
from .staleness import stale_reason
from .storage import EnrichmentCache


logger = logging.getLogger(__name__)


@dataclass
class EnrichmentSummary:
    total: int = 0
    reused: int = 0
    processed: int = 0
    detail_failures: int = 0
    stream_failures: int = 0
    persisted: bool = False

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EnrichmentOutcome:
    detail_ok: bool
    stream_ok: bool


def partition_activities(
    activities: Iterable[Activity],
    cache: EnrichmentCache,
) -> tuple[list[Activity], list[Activity]]:
    reuse: list[Activity] = []
    to_process: list[Activity] = []
    for activity in activities:
        reason = stale_reason(activity, cache)
        if reason is None:
            reuse.append(activity)
        else:
            logger.debug("Activity %s needs enrichment (%s).", activity.id, reason)
            to_process.append(activity)
    return reuse, to_process


def _run_count(result: FetchResult, activity_id: str) -> int:
    if not result.ok:
        logger.warning("Activity %s detail unavailable, counting 0 runs: %s", activity_id, result.error)
        return 0
    laps = result.value.get("laps") if isinstance(result.value, dict) else None
    if not isinstance(laps, list):
        return 0
    return len(laps)


def _descent(result: FetchResult, activity_id: str) -> float:
    if not result.ok:
        logger.warning("Activity %s elevation stream unavailable, counting 0 descent: %s", activity_id, result.error)
        return 0.0
    return vertical_drop(result.value)


def enrich_activity(client: Any, activity: Activity) -> tuple[EnrichmentRecord, EnrichmentOutcome]:
    """Fetch detail then altitude for one activity and derive its enrichment.

    Failed calls degrade the affected metric to zero; nothing is raised.
    """
    detail = client.get_activity_detail(activity.id)
    run_count = _run_count(detail, activity.id)

    stream = client.get_elevation_stream(activity.id)
    descent = _descent(stream, activity.id)

    record = EnrichmentRecord(
        activity_id=activity.id,
        updated_at=activity.updated_at,
        run_count=run_count,
        vertical_drop=descent,
    )
    return record, EnrichmentOutcome(detail_ok=detail.ok, stream_ok=stream.ok)


def apply_enrichment(activities: Iterable[Activity], cache: EnrichmentCache) -> list[Activity]:
    enriched: list[Activity] = []
    for activity in activities:
        record = cache.get(activity.id)
        if record is None:
            logger.warning("Activity %s has no enrichment record; using zeros.", activity.id)
            enriched.append(replace(activity, run_count=0, vertical_drop=0.0))
            continue
        enriched.append(
            replace(activity, run_count=record.run_count, vertical_drop=record.vertical_drop)
        )
    return enriched


def run_enrichment(
    activities: Iterable[Activity],
    cache: EnrichmentCache,
    client: Any,
) -> tuple[list[Activity], EnrichmentSummary]:
    """Enrich stale activities, save the cache once, and merge every activity.

    Returns new Activity objects carrying ``run_count`` and ``vertical_drop``
    for all of ``activities``, in their original order.
    """
    in_scope = list(activities)
    reuse, to_process = partition_activities(in_scope, cache)
    summary = EnrichmentSummary(total=len(in_scope), reused=len(reuse))

    if to_process:
        logger.info(
            "Enriching %s of %s activities (%s cached).",
            len(to_process),
            len(in_scope),
            len(reuse),
        )
    for index, activity in enumerate(to_process, start=1):
        record, outcome = enrich_activity(client, activity)
        cache.put(activity.id, record)
        summary.processed += 1
        if not outcome.detail_ok:
            summary.detail_failures += 1
        if not outcome.stream_ok:
            summary.stream_failures += 1
        logger.debug(
            "Enriched activity %s (%s/%s): %s runs, %.0f m descent.",
            activity.id,
            index,
            len(to_process),
            record.run_count,
            record.vertical_drop,
        )

    if to_process:
        summary.persisted = cache.persist()
    if cache.dirty:
        logger.warning(
            "Enrichment cache %s not saved; %s records are held in memory only and will be refetched next run.",
            cache.path,
            len(cache),
        )

    enriched = apply_enrichment(in_scope, cache)
    logger.info(
        "Enrichment done: %s activities, %s reused, %s processed (%s detail / %s stream failures).",
        summary.total,
        summary.reused,
        summary.processed,
        summary.detail_failures,
        summary.stream_failures,
    )
    return enriched, summary
