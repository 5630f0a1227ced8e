"""Wire the orchestrator from settings. Clients that cannot be built are left as None."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy.orm import sessionmaker

from catalog_index.batch_jobs import BatchJobSettings, build_batch_embedding_service
from catalog_index.catalog.sql_reader import SqlCatalogReader
from catalog_index.db.config import DBConfig
from catalog_index.db.session import build_session_factory, init_schema
from catalog_index.embeddings.settings import EmbedSettings
from catalog_index.pipeline.embedding_job import EmbeddingJobStage
from catalog_index.pipeline.export import ExportStage
from catalog_index.pipeline.index_update import IndexUpdateStage
from catalog_index.pipeline.orchestrator import BatchIndexingOrchestrator
from catalog_index.pipeline.recorder import SqlRunRecorder
from catalog_index.pipeline.settings import PipelineSettings
from catalog_index.pipeline.transform import TransformStage
from catalog_index.storage import StorageSettings, build_object_store
from catalog_index.vectorstore import QdrantIndexRepo, VectorStoreSettings, build_qdrant_client

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Every settings object the pipeline reads, loaded from env/.env by default."""

    db: DBConfig = field(default_factory=DBConfig)
    storage: StorageSettings = field(default_factory=StorageSettings)
    embed: EmbedSettings = field(default_factory=EmbedSettings)
    batch: BatchJobSettings = field(default_factory=BatchJobSettings)
    vectorstore: VectorStoreSettings = field(default_factory=VectorStoreSettings)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)


def _ensure_sqlite_dir(db_url: str) -> None:
    prefix = "sqlite:///"
    if db_url.startswith(prefix) and ":memory:" not in db_url:
        Path(db_url[len(prefix):]).parent.mkdir(parents=True, exist_ok=True)


def build_session(cfg: DBConfig) -> sessionmaker:
    """Session factory for the catalog DB, with the indexing_runs table created if missing."""
    _ensure_sqlite_dir(cfg.db_url)
    session_factory = build_session_factory(cfg)
    init_schema(session_factory)
    return session_factory


def build_index_repo(settings: VectorStoreSettings) -> QdrantIndexRepo | None:
    try:
        client = build_qdrant_client(settings)
    except ValueError as e:
        logger.error("Failed to build Qdrant client for %s: %s", settings.url, e)
        return None
    return QdrantIndexRepo(client, settings)


def build_orchestrator(
    config: PipelineConfig | None = None,
    session_factory: sessionmaker | None = None,
) -> BatchIndexingOrchestrator:
    """Build every stage from config. Missing clients surface later through is_available()."""
    cfg = config or PipelineConfig()
    sf = session_factory or build_session(cfg.db)

    store = build_object_store(cfg.storage)
    batch_service = build_batch_embedding_service(cfg.batch, store, cfg.embed)
    if batch_service is None:
        logger.warning("Batch embedding service not configured (backend=%s)", cfg.batch.backend)
    index = build_index_repo(cfg.vectorstore)

    return BatchIndexingOrchestrator(
        ExportStage(SqlCatalogReader(sf), store, cfg.storage, cfg.pipeline),
        EmbeddingJobStage(batch_service, cfg.pipeline),
        TransformStage(store, cfg.pipeline),
        IndexUpdateStage(index, store, cfg.pipeline),
        storage_settings=cfg.storage,
        settings=cfg.pipeline,
        recorder=SqlRunRecorder(sf),
    )
