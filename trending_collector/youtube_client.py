from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Any, Deque, Optional

import httpx

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"


class YouTubeAPIError(Exception):
    """A YouTube Data API call failed after retries."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class APIKeyRotator:
    def __init__(self, keys: list[str]):
        self._queue: Deque[tuple[str, float]] = deque()
        now = time.monotonic()
        for k in keys:
            self._queue.append((k, now))
        self.cooldown_seconds = 600  # 10 minutes cooldown when exhausted

    def __len__(self) -> int:
        return len(self._queue)

    def mark_exhausted(self):
        if not self._queue:
            return
        k, _ = self._queue.popleft()
        # Put it back with a future timestamp indicating cooldown
        self._queue.append((k, time.monotonic() + self.cooldown_seconds))

    def pop_available(self) -> Optional[str]:
        if not self._queue:
            return None
        # rotate until we find available one
        for _ in range(len(self._queue)):
            k, ready_at = self._queue[0]
            if time.monotonic() >= ready_at:
                return k
            self._queue.rotate(-1)
        return None


def _error_message(resp: httpx.Response) -> str:
    try:
        err = resp.json().get("error", {})
        msg = err.get("message") or (err.get("errors", [{}])[0].get("reason"))
    except (ValueError, AttributeError, IndexError):
        msg = None
    return str(msg) if msg else f"HTTP {resp.status_code}"


class YouTubeClient:
    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        settings = settings or get_settings()
        self.key_rotator = APIKeyRotator(settings.youtube_api_keys or [])
        self.max_attempts = max(1, settings.youtube_max_attempts)
        self.backoff_initial = 1.0
        self.backoff_max = 30.0
        self.client = httpx.AsyncClient(base_url=YOUTUBE_API_BASE, timeout=settings.youtube_timeout, transport=transport)
        self.last_status_code: Optional[int] = None
        self.last_error: Optional[str] = None

    @property
    def configured(self) -> bool:
        return len(self.key_rotator) > 0

    async def close(self):
        await self.client.aclose()

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET an API resource with key rotation and exponential backoff.

        Quota errors (403/429) put the key on cooldown, 5xx and transport
        errors are retried; anything else raises immediately.
        """
        if not self.configured:
            raise YouTubeAPIError("No YouTube API keys configured")

        backoff = self.backoff_initial
        for attempt in range(self.max_attempts):
            key = self.key_rotator.pop_available()
            if not key:
                self.last_error = "All API keys are cooling down"
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, self.backoff_max)
                continue
            try:
                resp = await self.client.get(path, params={**params, "key": key})
            except httpx.RequestError as e:
                self.last_error = f"Request error: {type(e).__name__}"
                logger.warning("YouTube %s attempt %d failed: %s", path, attempt + 1, self.last_error)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, self.backoff_max)
                continue

            self.last_status_code = resp.status_code
            if resp.status_code in (403, 429):
                self.last_error = _error_message(resp)
                logger.warning("YouTube key exhausted (%s): %s", resp.status_code, self.last_error)
                self.key_rotator.mark_exhausted()
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, self.backoff_max)
                continue
            if 500 <= resp.status_code < 600:
                self.last_error = _error_message(resp)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, self.backoff_max)
                continue
            if resp.status_code >= 400:
                self.last_error = _error_message(resp)
                raise YouTubeAPIError(self.last_error, resp.status_code)

            self.last_error = None
            return resp.json()

        raise YouTubeAPIError(
            f"YouTube {path} failed after {self.max_attempts} attempts: {self.last_error}",
            self.last_status_code,
        )

    async def list_most_popular(
        self, region_code: str, category_id: Optional[str] = None, max_results: int = 50
    ) -> list[dict[str, Any]]:
        """Fetch the most popular chart for a region, optionally one category."""
        params: dict[str, Any] = {
            "part": "snippet,contentDetails,statistics",
            "chart": "mostPopular",
            "regionCode": region_code,
            "maxResults": max_results,
        }
        if category_id:
            params["videoCategoryId"] = category_id
        data = await self._get("/videos", params)
        return data.get("items", [])

    async def list_categories(self, region_code: str) -> list[dict[str, Any]]:
        data = await self._get("/videoCategories", {"part": "snippet", "regionCode": region_code})
        return YouTubeClient.transform_categories(data.get("items", []))

    @staticmethod
    def transform_categories(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        for it in items:
            cid = it.get("id")
            if not cid:
                continue
            snip = it.get("snippet", {})
            out.append(
                {
                    "id": cid,
                    "title": snip.get("title"),
                    "assignable": bool(snip.get("assignable")),
                }
            )
        return out
