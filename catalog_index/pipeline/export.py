"""Export stage: catalog -> content file + metadata file, line i of each describing the same item."""
from __future__ import annotations

import json
import logging
import time
from contextlib import ExitStack
from typing import Any

from catalog_index.catalog.models import CatalogItem
from catalog_index.catalog.ports import CatalogReaderPort
from catalog_index.embeddings.text import build_product_embedding_text
from catalog_index.errors import ConfigurationUnavailable, RecordLevelSkip, StorageUnavailable
from catalog_index.pipeline.models import ExportResult
from catalog_index.pipeline.paths import RunPaths
from catalog_index.pipeline.settings import PipelineSettings
from catalog_index.storage.ports import ObjectStorePort
from catalog_index.storage.settings import StorageSettings

logger = logging.getLogger(__name__)


def _dumps(obj: dict[str, Any]) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def build_content_line(item: CatalogItem) -> str:
    """{"content": "<text to embed>"}"""
    text = build_product_embedding_text(item.name, item.description, item.brand, item.category_name)
    if not text:
        raise RecordLevelSkip(f"Product {item.id} has no text to embed")
    return _dumps({"content": text})


def build_metadata_line(item: CatalogItem) -> str:
    """{"id", "categoryId"?, "brand"? (lower-case), "price"?, "rating"?}"""
    if not item.id:
        raise RecordLevelSkip("Product without id")
    metadata: dict[str, Any] = {"id": item.id}
    if item.category_id is not None:
        metadata["categoryId"] = item.category_id
    if item.brand and item.brand.strip():
        metadata["brand"] = item.brand.lower()
    if item.price is not None:
        metadata["price"] = float(item.price)
    if item.rating is not None:
        metadata["rating"] = float(item.rating)
    return _dumps(metadata)


class ExportStage:
    """Pages through the active catalog and streams both files to object storage."""

    def __init__(
        self,
        catalog: CatalogReaderPort | None,
        store: ObjectStorePort | None,
        storage_settings: StorageSettings | None = None,
        settings: PipelineSettings | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._storage_settings = storage_settings or StorageSettings()
        self._settings = settings or PipelineSettings()

    def is_available(self) -> bool:
        return self._catalog is not None and self._store is not None

    def export(self, run_id: str) -> ExportResult:
        """Write input/<run_id>/products.jsonl and input/<run_id>/metadata.jsonl."""
        if self._store is None:
            raise StorageUnavailable("Object storage not configured; cannot export catalog")
        if self._catalog is None:
            raise ConfigurationUnavailable("Catalog reader not configured")

        paths = RunPaths.for_run(run_id, self._storage_settings, self._settings)
        page_size = self._settings.export_page_size
        logger.info("Starting catalog export to %s", paths.content_uri)
        start = time.monotonic()

        exported = 0
        failed = 0
        page = 0
        with ExitStack() as stack:
            content_out = stack.enter_context(self._store.open_writer(paths.content_uri))
            metadata_out = stack.enter_context(self._store.open_writer(paths.metadata_uri))
            while True:
                result = self._catalog.paged_query(page, page_size)
                for item in result.items:
                    # Build both lines before writing either so the files stay aligned.
                    try:
                        content_line = build_content_line(item)
                        metadata_line = build_metadata_line(item)
                    except (RecordLevelSkip, TypeError, ValueError) as e:
                        logger.warning("Failed to build export lines for product %s: %s", item.id, e)
                        failed += 1
                        continue
                    content_out.write(content_line + "\n")
                    metadata_out.write(metadata_line + "\n")
                    exported += 1
                page += 1
                if page % self._settings.export_progress_pages == 0:
                    logger.info("Exported page %s/%s", page, result.total_pages)
                if not result.has_next:
                    break

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Exported %s products (%s failed) to %s in %sms",
            exported, failed, paths.content_uri, duration_ms,
        )
        return ExportResult(
            content_uri=paths.content_uri,
            metadata_uri=paths.metadata_uri,
            item_count=exported,
            failed_count=failed,
            duration_ms=duration_ms,
        )
