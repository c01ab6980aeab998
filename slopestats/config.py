from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv


load_dotenv()


EnvGetter = Callable[[str], str | None]


def _str_env(*names: str, default: str = "", getenv: EnvGetter = os.getenv) -> str:
    for name in names:
        value = getenv(name)
        if value is not None:
            return value.strip()
    return default


def _optional_str_env(*names: str, getenv: EnvGetter = os.getenv) -> str | None:
    value = _str_env(*names, default="", getenv=getenv)
    return value or None


def _int_env(
    name: str,
    default: int,
    minimum: int | None = None,
    maximum: int | None = None,
    *,
    getenv: EnvGetter = os.getenv,
) -> int:
    value = getenv(name)
    if value is None:
        parsed = default
    else:
        try:
            parsed = int(value.strip())
        except ValueError:
            parsed = default

    if minimum is not None and parsed < minimum:
        parsed = minimum
    if maximum is not None and parsed > maximum:
        parsed = maximum
    return parsed


def _float_env(
    name: str,
    default: float,
    minimum: float | None = None,
    maximum: float | None = None,
    *,
    getenv: EnvGetter = os.getenv,
) -> float:
    value = getenv(name)
    if value is None:
        parsed = default
    else:
        try:
            parsed = float(value.strip())
        except ValueError:
            parsed = default

    if minimum is not None and parsed < minimum:
        parsed = minimum
    if maximum is not None and parsed > maximum:
        parsed = maximum
    return parsed


@dataclass(frozen=True)
class Settings:
    strava_client_id: str
    strava_client_secret: str
    strava_refresh_token: str
    strava_access_token: str | None

    log_level: str
    season: str | None
    strava_per_page: int
    strava_max_pages: int
    strava_timeout_seconds: float
    service_retry_count: int
    service_retry_backoff_seconds: float

    state_dir: Path
    enrichment_cache_file: Path
    strava_token_file: Path
    report_template_file: Path

    @classmethod
    def from_env(cls, getenv: EnvGetter = os.getenv) -> "Settings":
        state_dir = Path(_str_env("STATE_DIR", default="state", getenv=getenv) or "state").resolve()
        enrichment_cache_file = state_dir / _str_env(
            "ENRICHMENT_CACHE_FILE", default="enrichment_cache.json", getenv=getenv
        )
        strava_token_file = state_dir / _str_env(
            "STRAVA_TOKEN_FILE", default="strava_tokens.json", getenv=getenv
        )
        report_template_file = state_dir / _str_env(
            "REPORT_TEMPLATE_FILE", default="season_report.j2", getenv=getenv
        )

        return cls(
            strava_client_id=_str_env("STRAVA_CLIENT_ID", "CLIENT_ID", getenv=getenv),
            strava_client_secret=_str_env("STRAVA_CLIENT_SECRET", "CLIENT_SECRET", getenv=getenv),
            strava_refresh_token=_str_env("STRAVA_REFRESH_TOKEN", "REFRESH_TOKEN", getenv=getenv),
            strava_access_token=_optional_str_env("STRAVA_ACCESS_TOKEN", "ACCESS_TOKEN", getenv=getenv),
            log_level=_str_env("LOG_LEVEL", default="INFO", getenv=getenv).upper() or "INFO",
            season=_optional_str_env("SEASON", getenv=getenv),
            strava_per_page=_int_env("STRAVA_PER_PAGE", 200, minimum=1, maximum=200, getenv=getenv),
            strava_max_pages=_int_env("STRAVA_MAX_PAGES", 60, minimum=1, maximum=500, getenv=getenv),
            strava_timeout_seconds=_float_env(
                "STRAVA_TIMEOUT_SECONDS", 30.0, minimum=5.0, maximum=300.0, getenv=getenv
            ),
            service_retry_count=_int_env("SERVICE_RETRY_COUNT", 2, minimum=0, maximum=5, getenv=getenv),
            service_retry_backoff_seconds=_float_env(
                "SERVICE_RETRY_BACKOFF_SECONDS", 2.0, minimum=0.0, maximum=120.0, getenv=getenv
            ),
            state_dir=state_dir,
            enrichment_cache_file=enrichment_cache_file,
            strava_token_file=strava_token_file,
            report_template_file=report_template_file,
        )

    def validate(self) -> None:
        missing = []
        if not self.strava_client_id:
            missing.append("STRAVA_CLIENT_ID (or CLIENT_ID)")
        if not self.strava_client_secret:
            missing.append("STRAVA_CLIENT_SECRET (or CLIENT_SECRET)")
        if not self.strava_refresh_token:
            missing.append("STRAVA_REFRESH_TOKEN (or REFRESH_TOKEN)")
        if missing:
            missing_str = ", ".join(missing)
            raise ValueError(f"Missing required environment variables: {missing_str}")

    def ensure_state_paths(self) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
