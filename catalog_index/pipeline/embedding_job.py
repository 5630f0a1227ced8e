"""Embedding job stage: submit the content file, poll the external job to a terminal state."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from catalog_index.batch_jobs.models import JobHandle, JobState
from catalog_index.batch_jobs.ports import BatchEmbeddingPort
from catalog_index.batch_jobs.waiter import wait_for_completion
from catalog_index.errors import ConfigurationUnavailable
from catalog_index.pipeline.settings import PipelineSettings

logger = logging.getLogger(__name__)


class EmbeddingJobStage:
    """Thin stage over BatchEmbeddingPort. Submission is never retried automatically."""

    def __init__(
        self,
        service: BatchEmbeddingPort | None,
        settings: PipelineSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._service = service
        self._settings = settings or PipelineSettings()
        self._clock = clock
        self._sleep = sleep

    def is_available(self) -> bool:
        return self._service is not None

    def _require(self) -> BatchEmbeddingPort:
        if self._service is None:
            raise ConfigurationUnavailable("Batch embedding service not configured")
        return self._service

    async def submit(self, content_uri: str, output_prefix: str) -> JobHandle:
        return await self._require().submit(content_uri, output_prefix)

    async def poll(self, job_name: str) -> JobState:
        return await self._require().get_state(job_name)

    async def wait_for_completion(
        self,
        job_name: str,
        poll_interval_s: float | None = None,
        timeout_s: float | None = None,
    ) -> JobState:
        """Terminal state of the job, or JobTimeout at the deadline."""
        return await wait_for_completion(
            self._require(),
            job_name,
            poll_interval_s if poll_interval_s is not None else self._settings.poll_interval_s,
            timeout_s if timeout_s is not None else self._settings.wait_timeout_s,
            clock=self._clock,
            sleep=self._sleep,
        )

    async def output_uri(self, job_name: str) -> str:
        return await self._require().get_output_uri(job_name)

    async def close(self) -> None:
        if self._service is not None:
            await self._service.close()
