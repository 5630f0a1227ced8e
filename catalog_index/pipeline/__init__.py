"""Batch indexing pipeline: stages, orchestrator and run bookkeeping."""
from catalog_index.pipeline.embedding_job import EmbeddingJobStage
from catalog_index.pipeline.export import ExportStage
from catalog_index.pipeline.index_update import IndexUpdateStage
from catalog_index.pipeline.models import (
    EmbeddingJobResult,
    ExportResult,
    PipelineResult,
    PipelineStage,
    TransformResult,
)
from catalog_index.pipeline.orchestrator import BatchIndexingOrchestrator
from catalog_index.pipeline.paths import RunPaths, new_run_id
from catalog_index.pipeline.settings import PipelineSettings
from catalog_index.pipeline.transform import TransformStage

__all__ = [
    "BatchIndexingOrchestrator",
    "EmbeddingJobResult",
    "EmbeddingJobStage",
    "ExportResult",
    "ExportStage",
    "IndexUpdateStage",
    "PipelineResult",
    "PipelineSettings",
    "PipelineStage",
    "RunPaths",
    "TransformResult",
    "TransformStage",
    "new_run_id",
]
