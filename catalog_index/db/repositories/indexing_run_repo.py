"""IndexingRun repository: upsert by run id, stage transitions, finalize."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from catalog_index.db.base import utc_now
from catalog_index.db.models.indexing_run import IndexingRun


class IndexingRunRepo:
    """Create and update indexing run rows."""

    def get(self, session: Session, run_id: str) -> IndexingRun | None:
        return session.get(IndexingRun, run_id)

    def mark_stage(self, session: Session, run_id: str, stage: str) -> IndexingRun:
        """Create the row if missing, else move it to the given stage. Re-runs reset the outcome."""
        run = session.get(IndexingRun, run_id)
        if run is None:
            run = IndexingRun(run_id=run_id, stage=stage)
            session.add(run)
        else:
            run.stage = stage
            run.success = None
            run.finished_at = None
        session.flush()
        return run

    def finalize(self, session: Session, run_id: str, fields: dict) -> IndexingRun:
        run = session.get(IndexingRun, run_id)
        if run is None:
            run = IndexingRun(run_id=run_id, stage=fields.get("stage", "FAILED"))
            session.add(run)
        for key, value in fields.items():
            setattr(run, key, value)
        if run.error_message:
            run.error_message = run.error_message[:4096]
        run.finished_at = utc_now()
        session.flush()
        return run

    def list_recent(self, session: Session, limit: int = 20) -> list[IndexingRun]:
        rows = session.execute(
            select(IndexingRun).order_by(IndexingRun.created_at.desc()).limit(limit)
        ).scalars().all()
        return list(rows)
