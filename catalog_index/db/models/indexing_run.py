"""IndexingRun ORM model: one row per pipeline run id, updated as stages progress."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from catalog_index.db.base import Base, TimestampMixin


class IndexingRun(Base, TimestampMixin):
    """Pipeline run record. Primary key is the run id (path namespace)."""

    __tablename__ = "indexing_runs"

    run_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    stage: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    success: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    content_uri: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    metadata_uri: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    embedding_job_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    embedding_job_state: Mapped[str | None] = mapped_column(String(32), nullable=True)
    embeddings_uri: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    vectors_uri: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    index_resource: Mapped[str | None] = mapped_column(String(512), nullable=True)
    items_exported: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    datapoints_transformed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    error_message: Mapped[str | None] = mapped_column(String(4096), nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    result_json: Mapped[str | None] = mapped_column(Text, nullable=True)
