"""Background artist social analysis pipeline."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from analysis.metrics import summarize_engagement
from analysis.models import (
    STAGE_ESTIMATED_MS,
    STAGE_PROGRESS,
    AnalysisJob,
    AnalysisRecord,
    AnalysisStage,
    ProfileSnapshot,
    SocialPost,
)
from config import settings
from database import async_session_maker
from services.analysis_records import PersistenceError, artist_slug, upsert_by_slug
from services.analysis_token import create_analysis_token
from services.collector import PlatformCollector
from services.external_profile import fetch_external_profile
from services.insights import InsightSynthesizer, build_insight_synthesizer
from services.progress_store import ProgressStore, build_progress_store
from services.scrapers import build_scrape_client

logger = logging.getLogger(__name__)

ExternalProfileFetcher = Callable[[Optional[str]], Awaitable[Optional[Dict[str, Any]]]]


class AnalysisValidationError(ValueError):
    """Raised when a submission is rejected before any job is created."""


class AnalysisNotFoundError(LookupError):
    """Raised for unknown job ids, including ones past their retention window."""


class NoPostsFoundError(RuntimeError):
    """Raised when no platform produced a single post."""


@dataclass(frozen=True)
class AnalysisRequest:
    job_id: str
    job_token: str
    artist_name: str
    artist_slug: str
    instagram_handle: Optional[str]
    tiktok_handle: Optional[str]
    artist_id: Optional[str] = None


@dataclass(frozen=True)
class AnalysisSubmission:
    job_id: str
    job_token: str


def _clean_handle(value: Optional[str]) -> Optional[str]:
    handle = (value or "").strip().lstrip("@").strip()
    return handle or None


class AnalysisOrchestrator:
    """Owns submission, the background state machine and progress reads.

    Exactly one task writes a given job id. Platforms run one after the
    other; inside a platform, posts and profile are fetched concurrently.
    """

    def __init__(
        self,
        *,
        progress_store: ProgressStore,
        collector: PlatformCollector,
        synthesizer: InsightSynthesizer,
        session_maker: async_sessionmaker[AsyncSession],
        retention_seconds: float = 300,
        connect_delay_seconds: float = 1.0,
        external_profile_fetcher: ExternalProfileFetcher = fetch_external_profile,
    ) -> None:
        self.progress_store = progress_store
        self.collector = collector
        self.synthesizer = synthesizer
        self.session_maker = session_maker
        self.retention_seconds = retention_seconds
        self.connect_delay_seconds = connect_delay_seconds
        self.external_profile_fetcher = external_profile_fetcher
        self._tasks: Set[asyncio.Task] = set()
        self._cleanup_tasks: Set[asyncio.Task] = set()

    @property
    def active_jobs(self) -> int:
        return len(self._tasks)

    async def submit(
        self,
        artist_name: str,
        instagram_handle: Optional[str] = None,
        tiktok_handle: Optional[str] = None,
        artist_id: Optional[str] = None,
    ) -> AnalysisSubmission:
        """Validate, seed progress at 0% and start the detached pipeline task."""
        name = (artist_name or "").strip()
        instagram = _clean_handle(instagram_handle)
        tiktok = _clean_handle(tiktok_handle)
        if not name:
            raise AnalysisValidationError("Artist name is required")
        if not instagram and not tiktok:
            raise AnalysisValidationError("At least one social media username is required")
        slug = artist_slug(name)
        if not slug:
            raise AnalysisValidationError("Artist name must contain at least one letter or digit")

        job_id = f"analysis-{int(time.time() * 1000)}-{secrets.token_hex(6)}"
        request = AnalysisRequest(
            job_id=job_id,
            job_token=create_analysis_token(job_id, slug),
            artist_name=name,
            artist_slug=slug,
            instagram_handle=instagram,
            tiktok_handle=tiktok,
            artist_id=(artist_id or "").strip() or None,
        )
        job = AnalysisJob(job_id=job_id)
        await self.progress_store.set(job)

        task = asyncio.create_task(self._run(request, job), name=f"artist-analysis:{job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(
            "Queued analysis %s for %s (instagram=%s tiktok=%s)",
            job_id, name, instagram or "-", tiktok or "-",
        )
        return AnalysisSubmission(job_id=job_id, job_token=request.job_token)

    async def get_progress(self, job_id: str) -> AnalysisJob:
        job = await self.progress_store.get(job_id)
        if job is None:
            raise AnalysisNotFoundError(f"Analysis {job_id} not found or expired")
        return job

    async def _advance(
        self,
        job: AnalysisJob,
        stage: AnalysisStage,
        message: str,
        progress: Optional[int] = None,
    ) -> None:
        checkpoint = STAGE_PROGRESS[stage] if progress is None else progress
        job.stage = stage
        job.progress_percent = max(job.progress_percent, checkpoint)
        job.message = message
        job.estimated_duration_ms = STAGE_ESTIMATED_MS[stage]
        await self.progress_store.set(job)

    async def _finish(
        self,
        job: AnalysisJob,
        *,
        success: bool,
        message: str,
        error: Optional[str] = None,
        result_slug: Optional[str] = None,
    ) -> None:
        job.stage = AnalysisStage.COMPLETE
        job.progress_percent = 100
        job.message = message
        job.estimated_duration_ms = 0
        job.complete = True
        job.success = success
        job.error = error
        job.result_slug = result_slug if success else None
        try:
            await self.progress_store.set(job)
        except Exception:
            logger.exception("Could not write terminal progress for %s", job.job_id)

    async def _run(self, request: AnalysisRequest, job: AnalysisJob) -> None:
        """Task entry point; the only error boundary for a job."""
        try:
            await self._execute(request, job)
        except NoPostsFoundError as exc:
            logger.warning("Analysis %s found no posts", request.job_id)
            await self._finish(job, success=False, message="No posts found", error=str(exc))
        except Exception as exc:
            logger.exception("Analysis %s failed: %s", request.job_id, exc)
            await self._finish(
                job,
                success=False,
                message="Analysis failed",
                error=str(exc) or exc.__class__.__name__,
            )
        finally:
            self._schedule_cleanup(request.job_id)

    async def _collect(
        self,
        request: AnalysisRequest,
        job: AnalysisJob,
        posts_by_platform: Dict[str, List[SocialPost]],
        profiles: Dict[str, ProfileSnapshot],
    ) -> None:
        if request.instagram_handle:
            handle = request.instagram_handle
            await self._advance(job, AnalysisStage.CONNECTING_INSTAGRAM, f"Connecting to Instagram @{handle}...")
            await asyncio.sleep(self.connect_delay_seconds)
            await self._advance(job, AnalysisStage.COLLECTING_INSTAGRAM_POSTS, "Collecting Instagram posts and profile...")
            collection = await self.collector.collect("instagram", handle)
            posts_by_platform["instagram"] = collection.posts
            if collection.profile is not None:
                profiles["instagram"] = collection.profile

        if request.tiktok_handle:
            handle = request.tiktok_handle
            checkpoint = (
                STAGE_PROGRESS[AnalysisStage.CONNECTING_TIKTOK]
                if request.instagram_handle
                else STAGE_PROGRESS[AnalysisStage.COLLECTING_INSTAGRAM_POSTS]
            )
            await self._advance(job, AnalysisStage.CONNECTING_TIKTOK, f"Connecting to TikTok @{handle}...", checkpoint)
            await asyncio.sleep(self.connect_delay_seconds)
            await self._advance(job, AnalysisStage.COLLECTING_TIKTOK_POSTS, "Collecting TikTok videos and profile...")
            collection = await self.collector.collect("tiktok", handle)
            posts_by_platform["tiktok"] = collection.posts
            if collection.profile is not None:
                profiles["tiktok"] = collection.profile

    async def _execute(self, request: AnalysisRequest, job: AnalysisJob) -> None:
        posts_by_platform: Dict[str, List[SocialPost]] = {}
        profiles: Dict[str, ProfileSnapshot] = {}
        await self._collect(request, job, posts_by_platform, profiles)

        total_posts = sum(len(posts) for posts in posts_by_platform.values())
        if total_posts == 0:
            raise NoPostsFoundError("No posts found. Please check your usernames and try again.")

        await self._advance(job, AnalysisStage.ANALYZING, f"Analyzing engagement across {total_posts} posts...")
        engagement_summary = summarize_engagement(posts_by_platform, profiles)
        external_profile = await self.external_profile_fetcher(request.artist_id)

        await self._advance(job, AnalysisStage.GENERATING_INSIGHTS, "Generating AI insights...")
        all_posts = posts_by_platform.get("instagram", []) + posts_by_platform.get("tiktok", [])
        analysis = await self.synthesizer.synthesize(all_posts, external_profile, engagement_summary)

        await self._advance(job, AnalysisStage.PERSISTING, "Saving your analysis...")
        record = AnalysisRecord(
            artist_slug=request.artist_slug,
            artist_name=request.artist_name,
            instagram_username=request.instagram_handle,
            tiktok_username=request.tiktok_handle,
            posts_analyzed=total_posts,
            analysis_result=analysis,
            scraped_posts=posts_by_platform,
            profile_data=profiles,
            engagement_summary=engagement_summary,
            external_profile_data=external_profile,
            analysis_token=request.job_token,
        )
        persistence_error: Optional[str] = None
        try:
            async with self.session_maker() as db:
                await upsert_by_slug(db, record)
        except (PersistenceError, SQLAlchemyError, OSError) as exc:
            logger.error("Analysis %s ran but could not be saved: %s", request.job_id, exc)
            persistence_error = "Analysis completed but results could not be saved and may not be retrievable later."

        await self._finish(
            job,
            success=True,
            message="Analysis complete!",
            error=persistence_error,
            result_slug=request.artist_slug,
        )
        logger.info("Analysis %s complete for %s (%s posts)", request.job_id, request.artist_slug, total_posts)

    def _schedule_cleanup(self, job_id: str) -> None:
        task = asyncio.create_task(self._expire_later(job_id), name=f"artist-analysis-cleanup:{job_id}")
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)

    async def _expire_later(self, job_id: str) -> None:
        await asyncio.sleep(self.retention_seconds)
        try:
            await self.progress_store.delete(job_id)
        except Exception as exc:
            logger.warning("Could not expire progress for %s: %s", job_id, exc)

    async def drain(self, timeout: Optional[float] = None) -> int:
        """Wait for running pipelines; returns how many are still running."""
        if not self._tasks:
            return 0
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        return len(pending)

    async def shutdown(self, grace_seconds: float = 30) -> None:
        pending = await self.drain(timeout=grace_seconds)
        if pending:
            logger.warning("%s analyses still running at shutdown", pending)
        for task in list(self._cleanup_tasks):
            task.cancel()
        await self.collector.aclose()
        await self.progress_store.aclose()


_orchestrator: Optional[AnalysisOrchestrator] = None


def get_orchestrator() -> AnalysisOrchestrator:
    """Process-wide orchestrator built from settings on first use."""
    global _orchestrator
    if _orchestrator is None:
        clients = {platform: build_scrape_client(platform) for platform in ("instagram", "tiktok")}
        _orchestrator = AnalysisOrchestrator(
            progress_store=build_progress_store(),
            collector=PlatformCollector(clients, fallback_enabled=settings.FALLBACK_DATA_ENABLED),
            synthesizer=build_insight_synthesizer(),
            session_maker=async_session_maker,
            retention_seconds=settings.PROGRESS_RETENTION_SECONDS,
            connect_delay_seconds=settings.CONNECT_DELAY_SECONDS,
        )
    return _orchestrator


def peek_orchestrator() -> Optional[AnalysisOrchestrator]:
    return _orchestrator
