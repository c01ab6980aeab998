from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

import requests

from .config import Settings
from .enrichment import run_enrichment
from .report import load_report_template, render_report, report_json
from .seasons import aggregate_seasons, filter_by_season, is_season_key
from .storage import EnrichmentCache
from .strava_client import StravaClient


logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def run_once(
    settings: Settings,
    *,
    season: str | None = None,
    client: Any | None = None,
    rebuild_cache: bool = False,
) -> dict[str, Any]:
    """Fetch, enrich and aggregate winter-sport activities.

    ``client`` defaults to a StravaClient built from ``settings``; errors from
    listing activities propagate, per-activity enrichment errors do not.
    """
    settings.ensure_state_paths()
    if client is None:
        client = StravaClient(settings)

    cache = EnrichmentCache.load(settings.enrichment_cache_file)

    activities = client.list_activities()
    in_scope = filter_by_season(activities, season)
    if season:
        logger.info(
            "Season %s: %s of %s activities in scope.",
            season,
            len(in_scope),
            len(activities),
        )
    if rebuild_cache:
        logger.info("Discarding cached enrichment for %s activities.", len(in_scope))
        for activity in in_scope:
            cache.discard(activity.id)

    enriched, enrichment = run_enrichment(in_scope, cache, client)
    summaries = aggregate_seasons(enriched)
    return {
        "status": "ok",
        "season": season,
        "enrichment": enrichment.as_dict(),
        "seasons": summaries,
    }


def _season_arg(value: str) -> str:
    text = value.strip()
    if not is_season_key(text):
        raise argparse.ArgumentTypeError(f"expected a season like 2024-2025, got '{value}'")
    return text


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slopestats",
        description="Summarize Strava ski and snowboard seasons with run counts and vertical drop.",
    )
    parser.add_argument(
        "-s",
        "--season",
        type=_season_arg,
        default=None,
        help="Only process one season, e.g. 2024-2025 (defaults to SEASON env or all seasons).",
    )
    parser.add_argument(
        "--rebuild-cache",
        action="store_true",
        help="Discard cached enrichment for the selected activities and re-enrich them.",
    )
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    _configure_logging(settings.log_level)

    season = args.season
    if season is None and settings.season:
        if not is_season_key(settings.season):
            parser.error(f"SEASON must look like 2024-2025, got '{settings.season}'")
        season = settings.season

    try:
        settings.validate()
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    try:
        result = run_once(settings, season=season, rebuild_cache=args.rebuild_cache)
    except requests.RequestException:
        logger.exception("Could not load activities from Strava.")
        return 1

    summaries = result["seasons"]
    if args.format == "json":
        sys.stdout.write(report_json(summaries, season=season) + "\n")
        return 0

    rendered = render_report(
        summaries,
        season=season,
        template_text=load_report_template(settings.report_template_file),
    )
    if not rendered["ok"]:
        logger.error("Could not render report: %s", rendered["error"])
        return 1
    sys.stdout.write(rendered["text"] + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
