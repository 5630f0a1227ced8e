"""Port for the external asynchronous batch embedding service."""
from typing import Protocol, runtime_checkable

from catalog_index.batch_jobs.models import JobHandle, JobState


@runtime_checkable
class BatchEmbeddingPort(Protocol):
    """submit / getState / getOutputUri. The service is the only source of truth for state."""

    async def submit(self, input_uri: str, output_prefix: str) -> JobHandle:
        ...

    async def get_state(self, job_name: str) -> JobState:
        ...

    async def get_output_uri(self, job_name: str) -> str:
        """Shard output prefix. Only valid once the job has SUCCEEDED."""
        ...

    async def close(self) -> None:
        ...
