"""Pytest fixtures: temp SQLite catalog, local object store, fake ports."""
import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

import pytest

from catalog_index.batch_jobs.models import JobHandle, JobState
from catalog_index.catalog.models import CatalogItem, CatalogPage
from catalog_index.db.config import DBConfig
from catalog_index.db.models.catalog import Category, Product
from catalog_index.db.session import build_session_factory, init_schema, session_scope
from catalog_index.errors import EmptyDatasetError
from catalog_index.pipeline.settings import PipelineSettings
from catalog_index.storage.local import LocalObjectStore
from catalog_index.storage.settings import StorageSettings
from catalog_index.storage.uris import ObjectUri

BUCKET = "test-bucket"


@pytest.fixture
def object_root(tmp_path):
    return tmp_path / "objects"


@pytest.fixture
def store(object_root) -> LocalObjectStore:
    return LocalObjectStore(object_root)


@pytest.fixture
def storage_settings(object_root) -> StorageSettings:
    return StorageSettings(scheme="file", bucket=BUCKET, local_root=str(object_root))


@pytest.fixture
def pipeline_settings() -> PipelineSettings:
    return PipelineSettings(
        export_page_size=2,
        poll_interval_s=30.0,
        wait_timeout_s=300.0,
        complete_overwrite=True,
    )


@pytest.fixture
def db_config(tmp_path) -> DBConfig:
    return DBConfig(db_url=f"sqlite:///{tmp_path / 'catalog.db'}", echo_sql=False)


@pytest.fixture
def session_factory(db_config: DBConfig):
    sf = build_session_factory(db_config)
    init_schema(sf)
    yield sf
    sf.kw["bind"].dispose()


@pytest.fixture
def seeded_catalog(session_factory):
    """Two categories, four active products and one discontinued product."""
    with session_scope(session_factory) as s:
        shoes = Category(id="cat-shoes", name="Shoes")
        bags = Category(id="cat-bags", name="Bags")
        s.add_all([shoes, bags])
        s.add_all([
            Product(id="p-001", sku="S1", name="Trail Runner", description="Light trail shoe",
                    price=Decimal("89.90"), brand="Acme", rating=Decimal("4.5"), category=shoes),
            Product(id="p-002", sku="S2", name="City Walker", description=None,
                    price=Decimal("59.00"), brand=None, rating=None, category=shoes),
            Product(id="p-003", sku="B1", name="Day Pack", description="20 litre backpack",
                    price=Decimal("45.00"), brand="Northpeak", rating=Decimal("4.0"), category=bags),
            Product(id="p-004", sku="B2", name="Tote", description="Canvas tote",
                    price=Decimal("15.00"), brand="Acme", rating=None, category=None),
            Product(id="p-005", sku="B3", name="Old Tote", description="Discontinued",
                    price=Decimal("9.00"), brand="Acme", status="DISCONTINUED", category=bags),
        ])
    return session_factory


def object_uri(*parts: str) -> str:
    return str(ObjectUri("file", BUCKET, "").join(*parts))


def write_jsonl(store, uri: str, records: Iterable[dict]) -> str:
    with store.open_writer(uri) as fh:
        for rec in records:
            fh.write(json.dumps(rec) + "\n")
    return uri


def prediction(values: list[float], content: str = "x") -> dict:
    return {"instance": {"content": content}, "predictions": [{"embeddings": {"values": values}}]}


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class ListCatalog:
    """CatalogReaderPort over an in-memory list."""

    def __init__(self, items: list[CatalogItem]) -> None:
        self.items = items
        self.calls: list[tuple[int, int]] = []

    def paged_query(self, page: int, page_size: int) -> CatalogPage:
        self.calls.append((page, page_size))
        start = page * page_size
        total_pages = -(-len(self.items) // page_size)
        return CatalogPage(items=self.items[start:start + page_size], page=page, total_pages=total_pages)


class ScriptedBatchService:
    """BatchEmbeddingPort that embeds on submit and replays a scripted state sequence.

    The last scripted state repeats once the script is exhausted.
    """

    def __init__(self, store, states: list[JobState], dims: int = 2, shard_size: int = 1000) -> None:
        self.store = store
        self.states = list(states)
        self.dims = dims
        self.shard_size = shard_size
        self.submitted: list[JobHandle] = []
        self.polls = 0
        self.closed = False

    async def submit(self, input_uri: str, output_prefix: str) -> JobHandle:
        prefix = ObjectUri.parse(output_prefix).as_prefix()
        with self.store.open_reader(input_uri) as fh:
            lines = [line for line in fh if line.strip()]
        for shard_no, start in enumerate(range(0, len(lines), self.shard_size)):
            chunk = lines[start:start + self.shard_size]
            records = [
                prediction([float(start + i + 1)] * self.dims, json.loads(line)["content"])
                for i, line in enumerate(chunk)
            ]
            write_jsonl(self.store, str(prefix.join(f"prediction-{shard_no:05d}.jsonl")), records)
        handle = JobHandle(
            name=f"jobs/{len(self.submitted) + 1}",
            input_uri=input_uri,
            output_prefix=str(prefix),
            submitted_at=datetime.now(timezone.utc),
        )
        self.submitted.append(handle)
        return handle

    async def get_state(self, job_name: str) -> JobState:
        self.polls += 1
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]

    async def get_output_uri(self, job_name: str) -> str:
        handle = next(h for h in self.submitted if h.name == job_name)
        return handle.output_prefix

    async def close(self) -> None:
        self.closed = True


class RecordingIndex:
    """VectorIndexPort that keeps what it was asked to publish."""

    collection = "test_products"

    def __init__(self) -> None:
        self.points: dict[str, object] = {}
        self.replace_calls = 0
        self.upsert_calls = 0

    async def replace_all(self, datapoints) -> int:
        self.replace_calls += 1
        fresh = {dp.id: dp for dp in datapoints}
        if not fresh:
            raise EmptyDatasetError()
        self.points = fresh
        return len(fresh)

    async def upsert(self, datapoints) -> int:
        self.upsert_calls += 1
        n = 0
        for dp in datapoints:
            self.points[dp.id] = dp
            n += 1
        return n

    async def health(self) -> bool:
        return True

    async def close(self) -> None:
        pass


class MemoryRecorder:
    def __init__(self) -> None:
        self.stages: list[tuple[str, str]] = []
        self.results = []

    def mark_stage(self, run_id, stage) -> None:
        self.stages.append((run_id, stage.value))

    def record_result(self, result) -> None:
        self.results.append(result)
