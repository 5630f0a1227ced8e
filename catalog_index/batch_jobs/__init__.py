"""Batch embedding jobs: state model, port, local and HTTP backends, poll loop."""
from __future__ import annotations

from catalog_index.batch_jobs.http_client import HttpBatchJobClient
from catalog_index.batch_jobs.local import LocalBatchEmbeddingService
from catalog_index.batch_jobs.models import JobHandle, JobState
from catalog_index.batch_jobs.ports import BatchEmbeddingPort
from catalog_index.batch_jobs.settings import BatchJobSettings
from catalog_index.batch_jobs.waiter import wait_for_completion
from catalog_index.embeddings.settings import EmbedSettings
from catalog_index.storage.ports import ObjectStorePort

__all__ = [
    "BatchEmbeddingPort",
    "BatchJobSettings",
    "HttpBatchJobClient",
    "JobHandle",
    "JobState",
    "LocalBatchEmbeddingService",
    "build_batch_embedding_service",
    "wait_for_completion",
]


def build_batch_embedding_service(
    settings: BatchJobSettings | None = None,
    store: ObjectStorePort | None = None,
    embed_settings: EmbedSettings | None = None,
) -> BatchEmbeddingPort | None:
    """Build the configured backend, or None if it cannot be built."""
    s = settings or BatchJobSettings()
    if s.backend == "http":
        if not s.api_base:
            return None
        return HttpBatchJobClient(s)
    if store is None:
        return None
    return LocalBatchEmbeddingService(store, settings=s, embed_settings=embed_settings)
