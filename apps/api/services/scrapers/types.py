"""Scrape provider contracts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional


PlatformKey = Literal["instagram", "tiktok"]
ScrapeMode = Literal["posts", "profile"]


class ProviderUnavailableError(RuntimeError):
    """Raised when no provider credentials are configured."""


class ProviderFailedError(RuntimeError):
    """Raised when a provider run ends in a failure state or returns nothing usable."""


class ProviderTimeoutError(ProviderFailedError):
    """Raised when a provider run does not finish within its polling budget."""


class RunStatus(str, Enum):
    READY = "READY"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    ABORTING = "ABORTING"
    ABORTED = "ABORTED"
    TIMING_OUT = "TIMING-OUT"
    TIMED_OUT = "TIMED-OUT"


CONTINUE_STATUSES = frozenset({RunStatus.READY, RunStatus.RUNNING})
FAILURE_STATUSES = frozenset({
    RunStatus.FAILED,
    RunStatus.ABORTING,
    RunStatus.ABORTED,
    RunStatus.TIMING_OUT,
    RunStatus.TIMED_OUT,
})


@dataclass(frozen=True)
class ProviderRun:
    run_id: str
    actor_id: str
    dataset_id: Optional[str]


@dataclass(frozen=True)
class TerminalStatus:
    status: RunStatus
    attempts: int
    dataset_id: Optional[str] = None
    reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCEEDED
