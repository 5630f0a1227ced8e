"""Bounded poll loop over a batch job."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from catalog_index.batch_jobs.models import JobState
from catalog_index.batch_jobs.ports import BatchEmbeddingPort
from catalog_index.errors import JobTimeout

logger = logging.getLogger(__name__)


async def wait_for_completion(
    service: BatchEmbeddingPort,
    job_name: str,
    poll_interval_s: float,
    timeout_s: float,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> JobState:
    """Poll every poll_interval_s until the job is terminal.

    The first poll happens one interval after the call. The last sleep is
    clipped to the deadline, so JobTimeout is raised exactly when timeout_s
    has elapsed and the poll made at the deadline was still non-terminal.
    """
    if poll_interval_s <= 0:
        raise ValueError("poll_interval_s must be positive")
    deadline = clock() + timeout_s
    polls = 0
    while True:
        remaining = max(deadline - clock(), 0.0)
        await sleep(min(poll_interval_s, remaining))
        state = await service.get_state(job_name)
        polls += 1
        logger.info("Batch job %s state: %s (poll %s)", job_name, state.value, polls)
        if state.is_terminal:
            return state
        if clock() >= deadline:
            logger.warning("Timeout waiting for batch job completion: %s", job_name)
            raise JobTimeout(job_name, timeout_s, state)
