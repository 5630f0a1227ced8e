"""Run recorder backed by the indexing_runs table."""
from __future__ import annotations

import logging

from sqlalchemy.orm import sessionmaker

from catalog_index.db.repositories.indexing_run_repo import IndexingRunRepo
from catalog_index.db.session import session_scope
from catalog_index.pipeline.models import PipelineResult, PipelineStage

logger = logging.getLogger(__name__)


class SqlRunRecorder:
    """RunRecorderPort over SQLAlchemy. Recording errors are logged, never raised."""

    def __init__(self, session_factory: sessionmaker, repo: IndexingRunRepo | None = None) -> None:
        self._session_factory = session_factory
        self._repo = repo or IndexingRunRepo()

    def mark_stage(self, run_id: str, stage: PipelineStage) -> None:
        try:
            with session_scope(self._session_factory) as session:
                self._repo.mark_stage(session, run_id, stage.value)
        except Exception:
            logger.exception("Failed to record stage %s for run %s", stage.value, run_id)

    def record_result(self, result: PipelineResult) -> None:
        try:
            fields = _result_fields(result)
            with session_scope(self._session_factory) as session:
                self._repo.finalize(session, result.run_id, fields)
        except Exception:
            logger.exception("Failed to record result for run %s", result.run_id)

    def get(self, run_id: str) -> dict | None:
        """Stored run as a plain dict, or None."""
        with session_scope(self._session_factory) as session:
            run = self._repo.get(session, run_id)
            return _as_dict(run) if run else None

    def list_recent(self, limit: int = 20) -> list[dict]:
        with session_scope(self._session_factory) as session:
            return [_as_dict(r) for r in self._repo.list_recent(session, limit)]


def _as_dict(run) -> dict:
    return {
        "run_id": run.run_id,
        "stage": run.stage,
        "success": run.success,
        "items_exported": run.items_exported,
        "datapoints_transformed": run.datapoints_transformed,
        "embedding_job_name": run.embedding_job_name,
        "embedding_job_state": run.embedding_job_state,
        "index_resource": run.index_resource,
        "duration_ms": run.duration_ms,
        "error_code": run.error_code,
        "error_message": run.error_message,
        "created_at": run.created_at.isoformat() if run.created_at else None,
        "finished_at": run.finished_at.isoformat() if run.finished_at else None,
    }


def _result_fields(result: PipelineResult) -> dict:
    return {
        "stage": result.final_stage.value,
        "success": result.success,
        "content_uri": result.content_uri,
        "metadata_uri": result.metadata_uri,
        "embedding_job_name": result.embedding_job_name,
        "embedding_job_state": result.embedding_job_state.value if result.embedding_job_state else None,
        "embeddings_uri": result.embeddings_uri,
        "vectors_uri": result.vectors_uri,
        "index_resource": result.index_resource,
        "items_exported": result.items_exported,
        "datapoints_transformed": result.datapoints_transformed,
        "duration_ms": result.duration_ms,
        "error_code": result.error_code,
        "error_message": result.error_message,
        "result_json": result.model_dump_json(),
    }
