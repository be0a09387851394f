"""Fixed-interval polling shared by every scrape provider."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple

from services.scrapers.types import FAILURE_STATUSES, RunStatus, TerminalStatus

logger = logging.getLogger(__name__)

StatusCheck = Callable[[], Awaitable[Tuple[RunStatus, Optional[str]]]]


async def poll_until_terminal(
    check_status: StatusCheck,
    *,
    interval_seconds: float,
    max_attempts: int,
    label: str = "provider run",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> TerminalStatus:
    """Poll ``check_status`` until the run reaches a terminal state.

    ``check_status`` returns ``(status, dataset_id)``. READY/RUNNING keep
    polling, SUCCEEDED returns, failure statuses return immediately. An
    exhausted budget is reported as TIMED-OUT, and any error raised by the
    status check stops polling and is reported as FAILED.
    """
    attempts = 0
    dataset_id: Optional[str] = None
    while attempts < max(int(max_attempts), 1):
        await sleep(interval_seconds)
        attempts += 1
        try:
            status, reported_dataset = await check_status()
        except Exception as exc:
            logger.warning("%s status check failed on attempt %s: %s", label, attempts, exc)
            return TerminalStatus(
                status=RunStatus.FAILED,
                attempts=attempts,
                dataset_id=dataset_id,
                reason=f"status_check_error: {exc}",
            )
        dataset_id = reported_dataset or dataset_id
        logger.debug("%s status %s (attempt %s)", label, status.value, attempts)

        if status == RunStatus.SUCCEEDED:
            return TerminalStatus(status=status, attempts=attempts, dataset_id=dataset_id)
        if status in FAILURE_STATUSES:
            return TerminalStatus(
                status=status,
                attempts=attempts,
                dataset_id=dataset_id,
                reason=f"run ended with {status.value}",
            )

    logger.warning("%s did not finish after %s attempts", label, attempts)
    return TerminalStatus(
        status=RunStatus.TIMED_OUT,
        attempts=attempts,
        dataset_id=dataset_id,
        reason="polling budget exhausted",
    )
