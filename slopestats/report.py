from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from .seasons import SeasonSummary


logger = logging.getLogger(__name__)


DEFAULT_REPORT_TEMPLATE = """
{% if not seasons %}
No winter-sport activities found{% if season %} for season {{ season }}{% endif %}.
{% else %}
{% for s in seasons %}
=== Season {{ s.season }} ===
Days on snow     {{ s.days }}
Activities       {{ s.activity_count }}
Runs             {{ s.run_count }} ({{ s.runs_per_day }}/day, {{ s.runs_per_activity }}/activity)
Distance         {{ "%.2f"|format(s.distance_km) }} km ({{ "%.2f"|format(s.distance_km_per_day) }} km/day, {{ "%.2f"|format(s.distance_km_per_activity) }} km/activity)
Vertical drop    {{ "%.2f"|format(s.vertical_drop_km) }} km ({{ s.vertical_drop_m_per_day }} m/day, {{ s.vertical_drop_m_per_activity }} m/activity, {{ s.vertical_drop_m_per_run }} m/run)
Elevation gain   {{ s.elevation_gain_m }} m ({{ s.elevation_gain_m_per_day }} m/day, {{ s.elevation_gain_m_per_activity }} m/activity)
Moving time      {{ "%.1f"|format(s.moving_time_h) }} h ({{ "%.1f"|format(s.moving_time_h_per_day) }} h/day, {{ "%.1f"|format(s.moving_time_h_per_activity) }} h/activity)
Elapsed time     {{ "%.1f"|format(s.elapsed_time_h) }} h ({{ "%.1f"|format(s.elapsed_time_h_per_day) }} h/day, {{ "%.1f"|format(s.elapsed_time_h_per_activity) }} h/activity)
Top speed        {{ "%.1f"|format(s.max_speed_kmh) }} km/h (avg max {{ "%.1f"|format(s.avg_max_speed_kmh) }} km/h)
Average speed    {{ "%.1f"|format(s.avg_speed_kmh) }} km/h
{% if not loop.last %}

{% endif %}
{% endfor %}
{% endif %}
"""


def _template_environment() -> SandboxedEnvironment:
    return SandboxedEnvironment(
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=False,
        undefined=StrictUndefined,
    )


def _normalize_template_text(template_text: str) -> str:
    return template_text.replace("\r\n", "\n").strip("\n")


def report_context(summaries: Iterable[SeasonSummary], season: str | None = None) -> dict[str, Any]:
    return {
        "season": season,
        "seasons": [summary.as_dict() for summary in summaries],
    }


def render_template_text(template_text: str, context: dict[str, Any]) -> dict[str, Any]:
    env = _template_environment()
    try:
        template = env.from_string(_normalize_template_text(template_text))
        rendered = template.render(context)
    except TemplateError as exc:
        return {
            "ok": False,
            "error": str(exc),
            "text": None,
        }
    return {
        "ok": True,
        "error": None,
        "text": rendered.strip("\n"),
    }


def load_report_template(path: Path | None) -> str | None:
    if path is None or not path.exists():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read report template %s: %s", path, exc)
        return None


def render_report(
    summaries: Iterable[SeasonSummary],
    *,
    season: str | None = None,
    template_text: str | None = None,
) -> dict[str, Any]:
    """Render season summaries as text.

    A custom template that fails to render falls back to the built-in one.
    """
    context = report_context(summaries, season)
    if template_text:
        result = render_template_text(template_text, context)
        if result["ok"]:
            result["fallback_used"] = False
            return result
        logger.warning("Custom report template failed (%s); using default template.", result["error"])
        fallback = render_template_text(DEFAULT_REPORT_TEMPLATE, context)
        fallback["fallback_used"] = True
        fallback["fallback_reason"] = result["error"]
        return fallback

    result = render_template_text(DEFAULT_REPORT_TEMPLATE, context)
    result["fallback_used"] = False
    return result


def report_json(summaries: Iterable[SeasonSummary], *, season: str | None = None) -> str:
    return json.dumps(report_context(summaries, season), indent=2)
