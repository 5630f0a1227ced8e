"""Stage results, the pipeline state machine and the final run result."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from catalog_index.batch_jobs.models import JobState


class PipelineStage(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    EXPORTING = "EXPORTING"
    EMBEDDING_SUBMITTED = "EMBEDDING_SUBMITTED"
    EMBEDDING_POLLING = "EMBEDDING_POLLING"
    TRANSFORMING = "TRANSFORMING"
    INDEX_UPDATING = "INDEX_UPDATING"
    DONE = "DONE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineStage.DONE, PipelineStage.FAILED)


# Forward-only transitions; FAILED is reachable from any non-terminal stage.
_NEXT: dict[PipelineStage, PipelineStage] = {
    PipelineStage.NOT_STARTED: PipelineStage.EXPORTING,
    PipelineStage.EXPORTING: PipelineStage.EMBEDDING_SUBMITTED,
    PipelineStage.EMBEDDING_SUBMITTED: PipelineStage.EMBEDDING_POLLING,
    PipelineStage.EMBEDDING_POLLING: PipelineStage.TRANSFORMING,
    PipelineStage.TRANSFORMING: PipelineStage.INDEX_UPDATING,
    PipelineStage.INDEX_UPDATING: PipelineStage.DONE,
}


def can_transition(current: PipelineStage, target: PipelineStage) -> bool:
    if current.is_terminal:
        return False
    return target is PipelineStage.FAILED or _NEXT.get(current) is target


class ExportResult(BaseModel):
    content_uri: str
    metadata_uri: str
    item_count: int = Field(..., ge=0)
    failed_count: int = Field(default=0, ge=0)
    duration_ms: int = Field(..., ge=0)


class TransformResult(BaseModel):
    output_uri: str
    transformed: int = Field(..., ge=0)
    failed: int = Field(default=0, ge=0)
    metadata_records: int = Field(default=0, ge=0)
    embedding_records: int = Field(default=0, ge=0)
    shard_count: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)

    @property
    def count_mismatch(self) -> bool:
        return self.metadata_records != self.embedding_records


class PipelineResult(BaseModel):
    """Outcome of one run. Built once when the run ends, never mutated."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    success: bool
    final_stage: PipelineStage
    failed_stage: PipelineStage | None = None
    content_uri: str | None = None
    metadata_uri: str | None = None
    embedding_job_name: str | None = None
    embedding_job_state: JobState | None = None
    embeddings_uri: str | None = None
    vectors_uri: str | None = None
    index_resource: str | None = None
    items_exported: int = 0
    datapoints_transformed: int = 0
    duration_ms: int = 0
    error_code: str | None = None
    error_message: str | None = None


class EmbeddingJobResult(BaseModel):
    """Outcome of the embed-only entry point. state is None when the caller did not wait."""

    job_name: str
    content_uri: str
    output_prefix: str
    state: JobState | None = None
    output_uri: str | None = None
