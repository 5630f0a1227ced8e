"""Run ids and the fixed storage naming convention derived from them."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from catalog_index.pipeline.settings import PipelineSettings
from catalog_index.storage.settings import StorageSettings
from catalog_index.storage.uris import ObjectUri

CONTENT_FILE = "products.jsonl"
METADATA_FILE = "metadata.jsonl"
VECTORS_FILE = "products.jsonl"


def new_run_id(now: datetime | None = None) -> str:
    """Sortable, globally unique run id, e.g. 20260118T103000Z-1a2b3c4d."""
    now = now or datetime.now(timezone.utc)
    return f"{now:%Y%m%dT%H%M%SZ}-{uuid4().hex[:8]}"


def validate_run_id(run_id: str) -> str:
    if not run_id or "/" in run_id or run_id.strip() != run_id or run_id in (".", ".."):
        raise ValueError(f"Invalid run id: {run_id!r}")
    return run_id


@dataclass(frozen=True)
class RunPaths:
    """Every storage location one run touches. Same run id, same paths."""

    run_id: str
    content_uri: str
    metadata_uri: str
    embeddings_prefix: str
    vectors_uri: str

    @classmethod
    def for_run(
        cls,
        run_id: str,
        storage: StorageSettings,
        settings: PipelineSettings,
    ) -> "RunPaths":
        validate_run_id(run_id)
        base = ObjectUri(storage.scheme, storage.bucket, "")
        return cls(
            run_id=run_id,
            content_uri=str(base.join(settings.input_prefix, run_id, CONTENT_FILE)),
            metadata_uri=str(base.join(settings.input_prefix, run_id, METADATA_FILE)),
            embeddings_prefix=str(base.join(settings.embeddings_prefix, run_id).as_prefix()),
            vectors_uri=str(base.join(settings.vectors_prefix, run_id, VECTORS_FILE)),
        )
