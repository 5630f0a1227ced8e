"""Bounded poll loop over a batch job: timing at the interval and at the deadline."""
import pytest

from catalog_index.batch_jobs.models import JobState
from catalog_index.batch_jobs.waiter import wait_for_completion
from catalog_index.errors import ConfigurationUnavailable, JobTimeout
from catalog_index.pipeline.embedding_job import EmbeddingJobStage
from catalog_index.pipeline.settings import PipelineSettings

from conftest import ScriptedBatchService

R, S = JobState.RUNNING, JobState.SUCCEEDED


@pytest.mark.asyncio
async def test_returns_after_exactly_four_intervals(clock) -> None:
    service = ScriptedBatchService(None, [R, R, R, S])
    start = clock.now

    state = await wait_for_completion(service, "jobs/1", 30.0, 3600.0, clock=clock, sleep=clock.sleep)

    assert state is JobState.SUCCEEDED
    assert service.polls == 4
    assert clock.now - start == 120.0
    assert clock.sleeps == [30.0, 30.0, 30.0, 30.0]


@pytest.mark.asyncio
async def test_first_poll_waits_one_interval(clock) -> None:
    service = ScriptedBatchService(None, [S])
    start = clock.now
    state = await wait_for_completion(service, "jobs/1", 15.0, 60.0, clock=clock, sleep=clock.sleep)
    assert state is JobState.SUCCEEDED
    assert clock.now - start == 15.0


@pytest.mark.asyncio
async def test_timeout_raised_at_deadline(clock) -> None:
    service = ScriptedBatchService(None, [R])
    start = clock.now

    with pytest.raises(JobTimeout) as exc_info:
        await wait_for_completion(service, "jobs/1", 30.0, 100.0, clock=clock, sleep=clock.sleep)

    # Last sleep is clipped so the deadline is hit exactly, then polled once more.
    assert clock.now - start == 100.0
    assert clock.sleeps == [30.0, 30.0, 30.0, 10.0]
    assert service.polls == 4
    assert exc_info.value.last_state is JobState.RUNNING
    assert exc_info.value.retryable is True
    assert exc_info.value.code == "JOB_TIMEOUT"


@pytest.mark.asyncio
async def test_failed_is_terminal_and_returned(clock) -> None:
    service = ScriptedBatchService(None, [R, JobState.FAILED])
    state = await wait_for_completion(service, "jobs/1", 5.0, 60.0, clock=clock, sleep=clock.sleep)
    assert state is JobState.FAILED


@pytest.mark.asyncio
async def test_zero_timeout_polls_once(clock) -> None:
    service = ScriptedBatchService(None, [R])
    with pytest.raises(JobTimeout):
        await wait_for_completion(service, "jobs/1", 30.0, 0.0, clock=clock, sleep=clock.sleep)
    assert service.polls == 1
    assert clock.sleeps == [0.0]


@pytest.mark.asyncio
async def test_non_positive_interval_rejected(clock) -> None:
    service = ScriptedBatchService(None, [S])
    with pytest.raises(ValueError):
        await wait_for_completion(service, "jobs/1", 0.0, 60.0, clock=clock, sleep=clock.sleep)


@pytest.mark.asyncio
async def test_stage_uses_settings_defaults(clock) -> None:
    service = ScriptedBatchService(None, [R, S])
    stage = EmbeddingJobStage(
        service,
        PipelineSettings(poll_interval_s=7.0, wait_timeout_s=100.0),
        clock=clock,
        sleep=clock.sleep,
    )
    assert await stage.wait_for_completion("jobs/1") is JobState.SUCCEEDED
    assert clock.sleeps == [7.0, 7.0]


@pytest.mark.asyncio
async def test_stage_without_service_is_unavailable() -> None:
    stage = EmbeddingJobStage(None)
    assert stage.is_available() is False
    with pytest.raises(ConfigurationUnavailable):
        await stage.submit("file://b/input/r/products.jsonl", "file://b/embeddings/r/")
