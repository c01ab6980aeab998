from __future__ import annotations

import logging
import time
from typing import Any

import requests

from .config import Settings
from .models import Activity, FetchResult
from .numeric_utils import as_float
from .storage import read_json, write_json


logger = logging.getLogger(__name__)

BASE_URL = "https://www.strava.com"
API_URL = f"{BASE_URL}/api/v3"
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class StravaAuthError(requests.RequestException):
    """Token refresh answered without a usable access token."""


class StravaClient:
    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self.client_id = settings.strava_client_id
        self.client_secret = settings.strava_client_secret
        self.refresh_token = settings.strava_refresh_token
        self.access_token = settings.strava_access_token
        self.token_file = settings.strava_token_file
        self.timeout_seconds = settings.strava_timeout_seconds
        self.per_page = settings.strava_per_page
        self.max_pages = settings.strava_max_pages
        self.retry_count = settings.service_retry_count
        self.retry_backoff_seconds = settings.service_retry_backoff_seconds
        self.session = session or requests.Session()
        self._load_tokens_from_cache()

    def _load_tokens_from_cache(self) -> None:
        cached = read_json(self.token_file)
        if not isinstance(cached, dict):
            return
        cached_access = cached.get("access_token")
        cached_refresh = cached.get("refresh_token")
        if isinstance(cached_access, str) and cached_access.strip():
            self.access_token = cached_access.strip()
        if isinstance(cached_refresh, str) and cached_refresh.strip():
            self.refresh_token = cached_refresh.strip()

    def _save_tokens_to_cache(self) -> None:
        if not self.access_token or not self.refresh_token:
            return
        try:
            write_json(
                self.token_file,
                {
                    "access_token": self.access_token,
                    "refresh_token": self.refresh_token,
                },
            )
        except OSError as exc:
            logger.warning("Could not cache Strava tokens in %s: %s", self.token_file, exc)

    def refresh_access_token(self) -> str:
        response = self.session.post(
            f"{BASE_URL}/oauth/token",
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": self.refresh_token,
                "grant_type": "refresh_token",
            },
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as exc:
            raise StravaAuthError(f"Strava token refresh returned invalid JSON: {exc}", response=response) from exc
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token.strip():
            raise StravaAuthError("Strava token refresh succeeded without access_token.", response=response)
        token = token.strip()
        self.access_token = token
        next_refresh = payload.get("refresh_token")
        if isinstance(next_refresh, str) and next_refresh.strip():
            self.refresh_token = next_refresh.strip()
        self._save_tokens_to_cache()
        logger.info("Strava access token refreshed.")
        return token

    def _send(self, method: str, path: str, params: dict[str, Any] | None) -> requests.Response:
        return self.session.request(
            method,
            f"{API_URL}{path}",
            headers={"Authorization": f"Bearer {self.access_token}"},
            params=params,
            timeout=self.timeout_seconds,
        )

    def _request(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> requests.Response:
        if not self.access_token:
            self.refresh_access_token()

        response = self._send(method, path, params)
        if response.status_code == 401:
            self.refresh_access_token()
            response = self._send(method, path, params)
        response.raise_for_status()
        return response

    def _request_with_retry(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> requests.Response:
        attempts = max(1, self.retry_count + 1)
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._request(method, path, params=params)
            except requests.HTTPError as exc:
                status = exc.response.status_code if exc.response is not None else None
                if status not in RETRYABLE_STATUS_CODES or attempt >= attempts:
                    raise
                reason = f"HTTP {status}"
            except (requests.ConnectionError, requests.Timeout) as exc:
                if attempt >= attempts:
                    raise
                reason = str(exc)
            sleep_seconds = self.retry_backoff_seconds * attempt
            logger.warning(
                "Strava %s failed (%s/%s): %s. Retrying in %ss.",
                path,
                attempt,
                attempts,
                reason,
                sleep_seconds,
            )
            time.sleep(sleep_seconds)

    def list_activities(self) -> list[Activity]:
        """All winter-sport activities of the athlete, newest first."""
        activities: list[Activity] = []
        skipped = 0
        page = 1
        while page <= self.max_pages:
            response = self._request_with_retry(
                "GET",
                "/athlete/activities",
                params={"per_page": self.per_page, "page": page},
            )
            page_items = response.json()
            if not page_items:
                break
            for item in page_items:
                activity = Activity.from_strava(item)
                if activity is None:
                    skipped += 1
                    continue
                if activity.is_winter_sport:
                    activities.append(activity)
            if len(page_items) < self.per_page:
                break
            page += 1
        else:
            logger.warning(
                "Strava activities pagination hit cap (%s pages, per_page=%s). Results may be truncated.",
                self.max_pages,
                self.per_page,
            )
        if skipped:
            logger.warning("Ignored %s Strava activities without id or start date.", skipped)
        logger.info("Fetched %s winter-sport activities from Strava.", len(activities))
        return activities

    def get_activity_detail(self, activity_id: int | str) -> FetchResult:
        try:
            response = self._request_with_retry("GET", f"/activities/{activity_id}")
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            return FetchResult.failure(f"activity detail request failed: {exc}")
        if not isinstance(payload, dict):
            return FetchResult.failure("activity detail response is not an object")
        return FetchResult.success(payload)

    def get_elevation_stream(self, activity_id: int | str) -> FetchResult:
        try:
            response = self._request_with_retry(
                "GET",
                f"/activities/{activity_id}/streams",
                params={"keys": "altitude", "key_by_type": "true"},
            )
            payload = response.json()
        except requests.HTTPError as exc:
            if exc.response is not None and exc.response.status_code == 404:
                return FetchResult.success(None)
            return FetchResult.failure(f"elevation stream request failed: {exc}")
        except (requests.RequestException, ValueError) as exc:
            return FetchResult.failure(f"elevation stream request failed: {exc}")
        return FetchResult.success(altitude_samples(payload))


def altitude_samples(payload: Any) -> list[float] | None:
    """Extract altitude samples from a streams response.

    Handles both ``key_by_type=true`` (mapping) and the list-of-streams shape.
    """
    stream: Any = None
    if isinstance(payload, dict):
        stream = payload.get("altitude")
    elif isinstance(payload, list):
        stream = next(
            (item for item in payload if isinstance(item, dict) and item.get("type") == "altitude"),
            None,
        )
    if not isinstance(stream, dict):
        return None
    data = stream.get("data")
    if not isinstance(data, list):
        return None
    samples = [as_float(value) for value in data]
    return [value for value in samples if value is not None]
