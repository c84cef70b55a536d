"""
Pipedrive Integration
======================

Read-only client for the Pipedrive v1 REST API:
- Deals (all non-deleted, optionally one pipeline)
- Activities and notes for a date range
- Users and pipelines

Requests are paced so consecutive calls are at least ``min_interval``
seconds apart. Each fetch reads a single window (no cursor pagination).

Setup:
1. Pipedrive -> Personal preferences -> API -> copy your personal token
2. Set PIPEDRIVE_API_TOKEN in .env
"""

import math
import time
from typing import Any, Dict, List, Optional

import requests

from scripts.lib.errors import (
    APIAuthError,
    APIError,
    APIRateLimitError,
    APITimeoutError,
    DataFetchError,
)
from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)

PIPEDRIVE_BASE_URL = "https://api.pipedrive.com/v1"
PIPEDRIVE_PAGE_LIMIT = 500
MAX_RATE_LIMIT_RETRIES = 2
DEFAULT_RETRY_AFTER = 2

DEAL_FIELDS = (
    "id,title,value,currency,status,add_time,update_time,close_time,"
    "won_time,lost_time,lost_reason,stage_id,pipeline_id,user_id,"
    "person_name,org_name"
)


def _retry_after_seconds(value: Optional[str]) -> int:
    """Seconds to wait from a Retry-After header; HTTP-dates and junk use the default."""
    try:
        return max(0, math.ceil(float(value)))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_RETRY_AFTER


class PipedriveClient:
    """Pipedrive API v1 client with request pacing."""

    def __init__(
        self,
        api_token: str,
        base_url: str = PIPEDRIVE_BASE_URL,
        min_interval: float = 0.3,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.min_interval = max(0.0, min_interval)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self._last_request_at: Optional[float] = None

    @classmethod
    def from_settings(cls, settings) -> "PipedriveClient":
        settings.require_crm()
        return cls(
            api_token=settings.pipedrive_api_token,
            base_url=settings.pipedrive_base_url,
            min_interval=settings.request_interval,
            timeout=settings.request_timeout,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_token)

    def _pace(self):
        """Sleep until min_interval has passed since the previous request."""
        if self._last_request_at is not None and self.min_interval:
            elapsed = time.monotonic() - self._last_request_at
            if elapsed < self.min_interval:
                wait = self.min_interval - elapsed
                logger.debug("Pacing Pipedrive requests, sleeping %.2fs", wait)
                time.sleep(wait)
        self._last_request_at = time.monotonic()

    def _get(self, endpoint: str, params: dict = None) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        merged = {"api_token": self.api_token}
        if params:
            merged.update({k: v for k, v in params.items() if v is not None})

        for attempt in range(MAX_RATE_LIMIT_RETRIES + 1):
            self._pace()
            try:
                resp = self.session.get(url, params=merged, timeout=self.timeout)
            except requests.Timeout:
                raise APITimeoutError(url, self.timeout)
            except requests.RequestException as e:
                raise APIError(f"GET {endpoint} failed: {e}", url=url)

            if resp.status_code == 429:
                retry_after = _retry_after_seconds(resp.headers.get("Retry-After"))
                if attempt < MAX_RATE_LIMIT_RETRIES:
                    logger.warning(
                        "Rate limited (429) on %s. Waiting %ds (attempt %d/%d)",
                        endpoint, retry_after, attempt + 1, MAX_RATE_LIMIT_RETRIES,
                    )
                    time.sleep(retry_after)
                    continue
                raise APIRateLimitError(url, retry_after)
            if resp.status_code in (401, 403):
                raise APIAuthError(url, resp.status_code)
            if resp.status_code >= 400:
                raise APIError(
                    f"GET {endpoint} returned {resp.status_code}: {resp.text[:200]}",
                    status_code=resp.status_code, url=url,
                )

            try:
                payload = resp.json()
            except ValueError:
                raise DataFetchError(f"GET {endpoint} returned invalid JSON", source=endpoint)
            if not isinstance(payload, dict) or payload.get("success") is False:
                error = payload.get("error") if isinstance(payload, dict) else None
                raise DataFetchError(
                    f"GET {endpoint} was not successful: {error or 'unknown error'}",
                    source=endpoint,
                )
            return payload

        raise APIRateLimitError(url)

    def _get_list(self, endpoint: str, params: dict = None) -> List[dict]:
        payload = self._get(endpoint, params)
        data = payload.get("data")
        if data is None:
            return []
        if not isinstance(data, list):
            raise DataFetchError(f"GET {endpoint} did not return a list", source=endpoint)
        return data

    def fetch_deals(self, status: str = "all_not_deleted",
                    pipeline_id: Optional[int] = None) -> List[dict]:
        params = {
            "status": status,
            "limit": PIPEDRIVE_PAGE_LIMIT,
            "include_fields": DEAL_FIELDS,
        }
        endpoint = "/deals"
        if pipeline_id is not None:
            endpoint = f"/pipelines/{pipeline_id}/deals"
        logger.info("Fetching deals (status=%s, pipeline=%s)...", status, pipeline_id or "all")
        deals = self._get_list(endpoint, params)
        logger.info("Fetched %d deals", len(deals))
        return deals

    def fetch_activities(self, start_date: str, end_date: str) -> List[dict]:
        logger.info("Fetching activities %s..%s", start_date, end_date)
        activities = self._get_list("/activities", {
            "start_date": start_date,
            "end_date": end_date,
            "user_id": 0,
            "limit": PIPEDRIVE_PAGE_LIMIT,
        })
        logger.info("Fetched %d activities", len(activities))
        return activities

    def fetch_notes(self, start_date: str, end_date: str) -> List[dict]:
        logger.info("Fetching notes %s..%s", start_date, end_date)
        notes = self._get_list("/notes", {
            "start_date": start_date,
            "end_date": end_date,
            "limit": PIPEDRIVE_PAGE_LIMIT,
        })
        logger.info("Fetched %d notes", len(notes))
        return notes

    def fetch_users(self) -> List[dict]:
        logger.info("Fetching users...")
        users = self._get_list("/users")
        logger.info("Fetched %d users", len(users))
        return users

    def fetch_pipelines(self) -> List[dict]:
        logger.info("Fetching pipelines...")
        pipelines = self._get_list("/pipelines")
        logger.info("Fetched %d pipelines", len(pipelines))
        return pipelines

    def test_connection(self) -> Dict[str, Any]:
        """Check the token against /users/me."""
        try:
            payload = self._get("/users/me")
        except (APIError, DataFetchError) as e:
            return {"success": False, "error": str(e), "message": "API connection failed"}
        return {
            "success": True,
            "data": payload.get("data"),
            "message": "API connection successful",
        }

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": "Pipedrive",
            "configured": self.is_configured,
            "features": ["deals", "activities", "notes", "users", "pipelines"],
        }
