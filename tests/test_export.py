"""Export stage: aligned content/metadata files from the paged catalog."""
import json

import pytest

from catalog_index.catalog.models import CatalogItem
from catalog_index.catalog.sql_reader import SqlCatalogReader
from catalog_index.embeddings.text import build_product_embedding_text
from catalog_index.errors import ConfigurationUnavailable, RecordLevelSkip, StorageUnavailable
from catalog_index.pipeline.export import ExportStage, build_content_line, build_metadata_line

from conftest import ListCatalog


def _lines(store, uri: str) -> list[dict]:
    with store.open_reader(uri) as fh:
        return [json.loads(line) for line in fh if line.strip()]


def _items(n: int) -> list[CatalogItem]:
    return [
        CatalogItem(id=f"p{i}", name=f"Item {i}", brand="Acme", category_id="c1",
                    category_name="Tools", price=float(i), rating=None)
        for i in range(1, n + 1)
    ]


def test_export_writes_aligned_files(store, storage_settings, pipeline_settings) -> None:
    catalog = ListCatalog(_items(5))
    stage = ExportStage(catalog, store, storage_settings, pipeline_settings)

    result = stage.export("run-a")

    assert result.item_count == 5
    assert result.failed_count == 0
    assert result.content_uri == "file://test-bucket/input/run-a/products.jsonl"
    assert result.metadata_uri == "file://test-bucket/input/run-a/metadata.jsonl"
    content = _lines(store, result.content_uri)
    metadata = _lines(store, result.metadata_uri)
    assert len(content) == len(metadata) == 5
    assert [m["id"] for m in metadata] == ["p1", "p2", "p3", "p4", "p5"]
    assert content[2]["content"] == "Item 3. Brand: Acme. Category: Tools."
    # page size 2 over 5 items
    assert [c[0] for c in catalog.calls] == [0, 1, 2]


def test_bad_item_is_skipped_on_both_files(store, storage_settings, pipeline_settings) -> None:
    items = _items(3)
    items.insert(1, CatalogItem(id="empty"))
    stage = ExportStage(ListCatalog(items), store, storage_settings, pipeline_settings)

    result = stage.export("run-b")

    assert result.item_count == 3
    assert result.failed_count == 1
    metadata = _lines(store, result.metadata_uri)
    content = _lines(store, result.content_uri)
    assert len(metadata) == len(content) == 3
    assert "empty" not in [m["id"] for m in metadata]


def test_empty_catalog_exports_empty_files(store, storage_settings, pipeline_settings) -> None:
    stage = ExportStage(ListCatalog([]), store, storage_settings, pipeline_settings)
    result = stage.export("run-c")
    assert result.item_count == 0
    assert store.exists(result.content_uri)
    assert _lines(store, result.metadata_uri) == []


def test_export_from_sql_catalog_in_key_order(seeded_catalog, store, storage_settings, pipeline_settings) -> None:
    stage = ExportStage(SqlCatalogReader(seeded_catalog), store, storage_settings, pipeline_settings)

    result = stage.export("run-sql")

    assert result.item_count == 4
    metadata = _lines(store, result.metadata_uri)
    assert [m["id"] for m in metadata] == ["p-001", "p-002", "p-003", "p-004"]
    assert metadata[0] == {"id": "p-001", "categoryId": "cat-shoes", "brand": "acme", "price": 89.9, "rating": 4.5}
    assert metadata[1] == {"id": "p-002", "categoryId": "cat-shoes", "price": 59.0}
    assert metadata[3] == {"id": "p-004", "brand": "acme", "price": 15.0}
    content = _lines(store, result.content_uri)
    assert content[0]["content"] == "Trail Runner. Light trail shoe Brand: Acme. Category: Shoes."


def test_unconfigured_dependencies(store, storage_settings) -> None:
    with pytest.raises(StorageUnavailable):
        ExportStage(ListCatalog([]), None).export("run-d")
    with pytest.raises(ConfigurationUnavailable):
        ExportStage(None, store, storage_settings).export("run-d")
    assert ExportStage(None, store).is_available() is False


def test_line_builders() -> None:
    item = CatalogItem(id="p9", name="Lamp", brand="  ", price=0.0)
    assert json.loads(build_metadata_line(item)) == {"id": "p9", "price": 0.0}
    assert json.loads(build_content_line(item)) == {"content": "Lamp."}
    with pytest.raises(RecordLevelSkip):
        build_content_line(CatalogItem(id="p10"))


def test_embedding_text_truncates_long_description() -> None:
    text = build_product_embedding_text("Desk", "x" * 1500, None, None)
    assert text == "Desk. " + "x" * 1000 + "..."
    assert build_product_embedding_text(None, None, None, "Chairs") == "Category: Chairs."
