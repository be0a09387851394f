"""Apify-style scrape provider client (submit, poll, fetch)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from config import settings
from services.scrapers.polling import poll_until_terminal
from services.scrapers.types import (
    PlatformKey,
    ProviderFailedError,
    ProviderRun,
    ProviderTimeoutError,
    ProviderUnavailableError,
    RunStatus,
    ScrapeMode,
    TerminalStatus,
)

logger = logging.getLogger(__name__)


class ScrapeProviderClient:
    """One configured scrape actor for one platform."""

    def __init__(
        self,
        *,
        platform: PlatformKey,
        token: str,
        actor_id: str,
        base_url: str = "https://api.apify.com/v2",
        poll_interval_seconds: float = 3.0,
        post_max_attempts: int = 60,
        profile_max_attempts: int = 30,
        results_limit: int = 30,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.platform = platform
        self.token = (token or "").strip()
        self.actor_id = actor_id
        self.base_url = base_url.rstrip("/")
        self.poll_interval_seconds = poll_interval_seconds
        self.post_max_attempts = post_max_attempts
        self.profile_max_attempts = profile_max_attempts
        self.results_limit = results_limit
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._sleep = sleep
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def configured(self) -> bool:
        return bool(self.token)

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                headers={"Authorization": f"Bearer {self.token}"},
                transport=self._transport,
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def max_attempts_for(self, mode: ScrapeMode) -> int:
        return self.profile_max_attempts if mode == "profile" else self.post_max_attempts

    def build_run_input(self, handle: str, mode: ScrapeMode) -> Dict[str, Any]:
        """Actor input for one handle; field names differ per platform."""
        username = handle.strip().lstrip("@")
        if self.platform == "tiktok":
            return {
                "profiles": [f"https://www.tiktok.com/@{username}"],
                "resultsPerPage": 1 if mode == "profile" else self.results_limit,
                "shouldDownloadVideos": False,
                "shouldDownloadCovers": False,
            }
        return {
            "directUrls": [f"https://www.instagram.com/{username}/"],
            "resultsType": "details" if mode == "profile" else "posts",
            "resultsLimit": 1 if mode == "profile" else self.results_limit,
            "addParentData": False,
        }

    async def submit_job(self, run_input: Dict[str, Any]) -> ProviderRun:
        if not self.configured:
            raise ProviderUnavailableError(f"{self.platform} scrape provider has no API token configured")
        try:
            response = await self._get_http_client().post(f"/acts/{self.actor_id}/runs", json=run_input)
            response.raise_for_status()
            data = response.json().get("data") or {}
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderFailedError(f"Could not start {self.platform} scrape run: {exc}") from exc

        run_id = data.get("id")
        if not run_id:
            raise ProviderFailedError(f"{self.platform} scrape provider returned no run id")
        return ProviderRun(run_id=str(run_id), actor_id=self.actor_id, dataset_id=data.get("defaultDatasetId"))

    async def _check_status(self, run: ProviderRun) -> Tuple[RunStatus, Optional[str]]:
        response = await self._get_http_client().get(f"/acts/{run.actor_id}/runs/{run.run_id}")
        response.raise_for_status()
        data = response.json().get("data") or {}
        return RunStatus(str(data.get("status", ""))), data.get("defaultDatasetId")

    async def poll_until_terminal(self, run: ProviderRun, max_attempts: Optional[int] = None) -> TerminalStatus:
        return await poll_until_terminal(
            lambda: self._check_status(run),
            interval_seconds=self.poll_interval_seconds,
            max_attempts=self.post_max_attempts if max_attempts is None else max_attempts,
            label=f"{self.platform} run {run.run_id}",
            sleep=self._sleep,
        )

    async def fetch_results(self, dataset_id: str) -> List[Dict[str, Any]]:
        try:
            response = await self._get_http_client().get(
                f"/datasets/{dataset_id}/items",
                params={"clean": "true", "format": "json"},
            )
            response.raise_for_status()
            items = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderFailedError(f"Could not fetch {self.platform} results: {exc}") from exc

        if not isinstance(items, list) or not items:
            raise ProviderFailedError(f"{self.platform} scrape returned an empty or malformed result set")
        return [item for item in items if isinstance(item, dict)]

    async def scrape(self, handle: str, mode: ScrapeMode = "posts") -> List[Dict[str, Any]]:
        """Submit, poll and fetch one run. Raises provider errors, never returns partial data."""
        run = await self.submit_job(self.build_run_input(handle, mode))
        logger.info("Started %s %s scrape for @%s (run %s)", self.platform, mode, handle, run.run_id)

        terminal = await self.poll_until_terminal(run, self.max_attempts_for(mode))
        if terminal.status == RunStatus.TIMED_OUT:
            raise ProviderTimeoutError(
                f"{self.platform} {mode} scrape timed out after {terminal.attempts} attempts"
            )
        if not terminal.succeeded:
            raise ProviderFailedError(f"{self.platform} {mode} scrape failed: {terminal.reason}")

        dataset_id = terminal.dataset_id or run.dataset_id
        if not dataset_id:
            raise ProviderFailedError(f"{self.platform} run {run.run_id} has no dataset")
        items = await self.fetch_results(dataset_id)
        logger.info("Retrieved %s %s items for @%s", len(items), self.platform, handle)
        return items


def build_scrape_client(platform: PlatformKey, **overrides: Any) -> ScrapeProviderClient:
    """Client configured from settings; ``overrides`` win over settings."""
    options: Dict[str, Any] = {
        "platform": platform,
        "token": settings.APIFY_TOKEN,
        "actor_id": settings.TIKTOK_ACTOR_ID if platform == "tiktok" else settings.INSTAGRAM_ACTOR_ID,
        "base_url": settings.APIFY_BASE_URL,
        "poll_interval_seconds": settings.SCRAPE_POLL_INTERVAL_SECONDS,
        "post_max_attempts": settings.SCRAPE_POST_MAX_ATTEMPTS,
        "profile_max_attempts": settings.SCRAPE_PROFILE_MAX_ATTEMPTS,
        "results_limit": settings.SCRAPE_RESULTS_LIMIT,
        "timeout_seconds": settings.SCRAPE_HTTP_TIMEOUT_SECONDS,
    }
    options.update(overrides)
    return ScrapeProviderClient(**options)
