"""Batch indexing orchestrator: export -> embed -> transform -> index for one run id.

The full run never raises past its own boundary: stage failures end the
run with a failed PipelineResult carrying whatever progress was made.
Single-stage entry points raise, so an operator resuming a run sees the
error directly.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from catalog_index.batch_jobs.models import JobState
from catalog_index.errors import EmptyDatasetError, IndexingError, JobFailed, JobTimeout
from catalog_index.pipeline.contracts import RunRecorderPort
from catalog_index.pipeline.embedding_job import EmbeddingJobStage
from catalog_index.pipeline.export import ExportStage
from catalog_index.pipeline.index_update import IndexUpdateStage
from catalog_index.pipeline.models import (
    EmbeddingJobResult,
    ExportResult,
    PipelineResult,
    PipelineStage,
    TransformResult,
    can_transition,
)
from catalog_index.pipeline.paths import RunPaths, new_run_id, validate_run_id
from catalog_index.pipeline.settings import PipelineSettings
from catalog_index.pipeline.transform import TransformStage
from catalog_index.storage.settings import StorageSettings

logger = logging.getLogger(__name__)


@dataclass
class _RunProgress:
    """Partial progress of a run in flight; frozen into a PipelineResult at the end."""

    run_id: str
    stage: PipelineStage = PipelineStage.NOT_STARTED
    content_uri: str | None = None
    metadata_uri: str | None = None
    embedding_job_name: str | None = None
    embedding_job_state: JobState | None = None
    embeddings_uri: str | None = None
    vectors_uri: str | None = None
    index_resource: str | None = None
    items_exported: int = 0
    datapoints_transformed: int = 0


class BatchIndexingOrchestrator:
    """Runs the four stages in order and exposes each one for manual resumption."""

    def __init__(
        self,
        export_stage: ExportStage,
        embedding_stage: EmbeddingJobStage,
        transform_stage: TransformStage,
        index_stage: IndexUpdateStage,
        *,
        storage_settings: StorageSettings | None = None,
        settings: PipelineSettings | None = None,
        recorder: RunRecorderPort | None = None,
    ) -> None:
        self._export = export_stage
        self._embedding = embedding_stage
        self._transform = transform_stage
        self._index = index_stage
        self._storage_settings = storage_settings or StorageSettings()
        self._settings = settings or PipelineSettings()
        self._recorder = recorder
        self._background: set[asyncio.Task] = set()

    def paths(self, run_id: str) -> RunPaths:
        return RunPaths.for_run(run_id, self._storage_settings, self._settings)

    def availability(self) -> dict[str, bool]:
        return {
            "export": self._export.is_available(),
            "embedding": self._embedding.is_available(),
            "transform": self._transform.is_available(),
            "index": self._index.is_available(),
        }

    def is_available(self) -> bool:
        """True only if every stage's external clients are configured."""
        return all(self.availability().values())

    async def index_health(self) -> bool:
        return await self._index.health()

    # --- full pipeline ---

    async def run_full_pipeline(self, run_id: str | None = None) -> PipelineResult:
        start = time.monotonic()
        try:
            run_id = validate_run_id(run_id) if run_id else new_run_id()
        except ValueError as e:
            logger.error("Rejected pipeline run: %s", e)
            # Nothing is recorded under an id that cannot name a run.
            return await self._finish(
                _RunProgress(run_id=str(run_id)), start, code="INVALID_RUN_ID", message=str(e), record=False
            )
        paths = self.paths(run_id)
        progress = _RunProgress(run_id=run_id)
        logger.info("Starting batch indexing pipeline: run_id=%s", run_id)

        try:
            await self._enter(progress, PipelineStage.EXPORTING)
            export = await asyncio.to_thread(self._export.export, run_id)
            progress.content_uri = export.content_uri
            progress.metadata_uri = export.metadata_uri
            progress.items_exported = export.item_count

            await self._enter(progress, PipelineStage.EMBEDDING_SUBMITTED)
            handle = await self._embedding.submit(export.content_uri, paths.embeddings_prefix)
            progress.embedding_job_name = handle.name

            await self._enter(progress, PipelineStage.EMBEDDING_POLLING)
            state = await self._embedding.wait_for_completion(handle.name)
            progress.embedding_job_state = state
            if state is not JobState.SUCCEEDED:
                raise JobFailed(handle.name, state.value)
            progress.embeddings_uri = await self._embedding.output_uri(handle.name)

            await self._enter(progress, PipelineStage.TRANSFORMING)
            transform = await asyncio.to_thread(
                self._transform.transform,
                export.metadata_uri,
                progress.embeddings_uri,
                paths.vectors_uri,
            )
            progress.vectors_uri = transform.output_uri
            progress.datapoints_transformed = transform.transformed
            if transform.transformed == 0:
                raise EmptyDatasetError("Transform produced no datapoints; index left unchanged")

            await self._enter(progress, PipelineStage.INDEX_UPDATING)
            progress.index_resource = await self._index.update_index(
                paths.vectors_uri, self._settings.complete_overwrite
            )

            await self._enter(progress, PipelineStage.DONE)
        except asyncio.CancelledError:
            logger.warning("Pipeline %s cancelled during %s", run_id, progress.stage.value)
            await self._finish(progress, start, code="CANCELLED", message="Run cancelled")
            raise
        except JobTimeout as e:
            if isinstance(e.last_state, JobState):
                progress.embedding_job_state = e.last_state
            logger.error("Pipeline %s failed at %s: %s", run_id, progress.stage.value, e)
            return await self._finish(progress, start, code=e.code, message=str(e))
        except IndexingError as e:
            logger.error("Pipeline %s failed at %s: %s", run_id, progress.stage.value, e)
            return await self._finish(progress, start, code=e.code, message=str(e))
        except Exception as e:
            logger.exception("Pipeline %s failed at %s with unexpected error", run_id, progress.stage.value)
            return await self._finish(progress, start, code="INTERNAL_ERROR", message=f"{type(e).__name__}: {e}")

        return await self._finish(progress, start)

    def run_full_pipeline_sync(self, run_id: str | None = None) -> PipelineResult:
        """Blocking variant for callers without an event loop."""
        return asyncio.run(self.run_full_pipeline(run_id))

    def start_full_pipeline(self, run_id: str | None = None) -> asyncio.Task:
        """Fire-and-forget: schedule the run on the running loop. The task is named after the run id."""
        run_id = run_id or new_run_id()
        task = asyncio.create_task(self.run_full_pipeline(run_id), name=run_id)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        logger.info("Pipeline %s dispatched to background", run_id)
        return task

    # --- single stages (resume a run by id) ---

    async def run_export_only(self, run_id: str) -> ExportResult:
        validate_run_id(run_id)
        return await asyncio.to_thread(self._export.export, run_id)

    async def run_embedding_only(self, run_id: str, *, wait: bool = False) -> EmbeddingJobResult:
        """Submit the run's content file. With wait, block until the job is terminal."""
        paths = self.paths(run_id)
        handle = await self._embedding.submit(paths.content_uri, paths.embeddings_prefix)
        result = EmbeddingJobResult(
            job_name=handle.name,
            content_uri=paths.content_uri,
            output_prefix=handle.output_prefix,
        )
        if not wait:
            return result
        state = await self._embedding.wait_for_completion(handle.name)
        output_uri = await self._embedding.output_uri(handle.name) if state is JobState.SUCCEEDED else None
        return result.model_copy(update={"state": state, "output_uri": output_uri})

    async def get_embedding_job_state(self, job_name: str) -> JobState:
        return await self._embedding.poll(job_name)

    async def run_transform_only(self, run_id: str, embeddings_uri: str | None = None) -> TransformResult:
        """Merge the run's metadata with shards under embeddings_uri (default: the run's prefix)."""
        paths = self.paths(run_id)
        return await asyncio.to_thread(
            self._transform.transform,
            paths.metadata_uri,
            embeddings_uri or paths.embeddings_prefix,
            paths.vectors_uri,
        )

    async def run_index_update_only(self, run_id: str, complete_overwrite: bool | None = None) -> str:
        paths = self.paths(run_id)
        return await self._index.update_index(paths.vectors_uri, complete_overwrite)

    async def close(self) -> None:
        """Cancel background runs and release clients."""
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self._embedding.close()
        await self._index.close()

    # --- internals ---

    async def _enter(self, progress: _RunProgress, stage: PipelineStage) -> None:
        if not can_transition(progress.stage, stage):
            raise IndexingError(
                f"Illegal stage transition {progress.stage.value} -> {stage.value}",
                code="ILLEGAL_TRANSITION",
            )
        logger.info("Pipeline %s: %s -> %s", progress.run_id, progress.stage.value, stage.value)
        progress.stage = stage
        if self._recorder is not None:
            await asyncio.to_thread(self._recorder.mark_stage, progress.run_id, stage)

    async def _finish(
        self,
        progress: _RunProgress,
        start: float,
        *,
        code: str | None = None,
        message: str | None = None,
        record: bool = True,
    ) -> PipelineResult:
        success = code is None and progress.stage is PipelineStage.DONE
        result = PipelineResult(
            run_id=progress.run_id,
            success=success,
            final_stage=PipelineStage.DONE if success else PipelineStage.FAILED,
            failed_stage=None if success else progress.stage,
            content_uri=progress.content_uri,
            metadata_uri=progress.metadata_uri,
            embedding_job_name=progress.embedding_job_name,
            embedding_job_state=progress.embedding_job_state,
            embeddings_uri=progress.embeddings_uri,
            vectors_uri=progress.vectors_uri,
            index_resource=progress.index_resource,
            items_exported=progress.items_exported,
            datapoints_transformed=progress.datapoints_transformed,
            duration_ms=int((time.monotonic() - start) * 1000),
            error_code=code,
            error_message=message,
        )
        if success:
            logger.info(
                "Pipeline %s completed in %sms: %s items exported, %s datapoints indexed into %s",
                result.run_id, result.duration_ms, result.items_exported,
                result.datapoints_transformed, result.index_resource,
            )
        if record and self._recorder is not None:
            await asyncio.to_thread(self._recorder.record_result, result)
        return result
