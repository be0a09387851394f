"""Keyed progress snapshots for background analyses."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import redis.asyncio as redis

from analysis.models import AnalysisJob
from config import settings

logger = logging.getLogger(__name__)

PROGRESS_KEY_PREFIX = "artist_ai:progress:"


class ProgressStore(ABC):
    """Single writer per job id; readers only poll."""

    @abstractmethod
    async def set(self, job: AnalysisJob) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get(self, job_id: str) -> Optional[AnalysisJob]:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, job_id: str) -> None:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class InMemoryProgressStore(ProgressStore):
    def __init__(self) -> None:
        self._jobs: Dict[str, AnalysisJob] = {}
        self._lock = asyncio.Lock()

    async def set(self, job: AnalysisJob) -> None:
        async with self._lock:
            self._jobs[job.job_id] = job.model_copy(deep=True)

    async def get(self, job_id: str) -> Optional[AnalysisJob]:
        async with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    async def delete(self, job_id: str) -> None:
        async with self._lock:
            self._jobs.pop(job_id, None)

    def __len__(self) -> int:
        return len(self._jobs)


class RedisProgressStore(ProgressStore):
    """JSON snapshot per job key.

    Terminal snapshots also carry a Redis TTL of twice the retention window.
    """

    def __init__(self, redis_client: redis.Redis, retention_seconds: int = 300) -> None:
        self.redis = redis_client
        self.retention_seconds = retention_seconds

    @staticmethod
    def _key(job_id: str) -> str:
        return f"{PROGRESS_KEY_PREFIX}{job_id}"

    async def set(self, job: AnalysisJob) -> None:
        ttl = max(self.retention_seconds * 2, 60) if job.complete else None
        await self.redis.set(self._key(job.job_id), job.model_dump_json(), ex=ttl)

    async def get(self, job_id: str) -> Optional[AnalysisJob]:
        raw = await self.redis.get(self._key(job_id))
        if raw is None:
            return None
        return AnalysisJob.model_validate_json(raw)

    async def delete(self, job_id: str) -> None:
        await self.redis.delete(self._key(job_id))

    async def aclose(self) -> None:
        await self.redis.aclose()


def build_progress_store() -> ProgressStore:
    if settings.PROGRESS_BACKEND == "redis":
        logger.info("Using Redis progress store at %s", settings.REDIS_URL)
        return RedisProgressStore(
            redis.from_url(settings.REDIS_URL, decode_responses=True),
            retention_seconds=settings.PROGRESS_RETENTION_SECONDS,
        )
    return InMemoryProgressStore()
