"""Qdrant-backed product index: complete overwrite and incremental upsert."""
from __future__ import annotations

import asyncio
import logging
from itertools import islice
from typing import Any, Iterable, Iterator
from uuid import UUID, NAMESPACE_URL, uuid5

from qdrant_client import AsyncQdrantClient, models as qdrant_models

from catalog_index.errors import EmptyDatasetError
from catalog_index.vectorstore.collections import (
    ensure_collection,
    ensure_payload_indexes,
    recreate_collection,
)
from catalog_index.vectorstore.errors import VectorSchemaMismatchError, VectorStoreError
from catalog_index.vectorstore.models import Datapoint
from catalog_index.vectorstore.settings import VectorStoreSettings

logger = logging.getLogger(__name__)


def point_id_for(datapoint_id: str) -> str:
    """Qdrant ids must be UUIDs or ints; other ids map to a stable UUIDv5."""
    try:
        return str(UUID(datapoint_id))
    except ValueError:
        return str(uuid5(NAMESPACE_URL, f"datapoint:{datapoint_id}"))


def _payload(dp: Datapoint) -> dict[str, Any]:
    payload: dict[str, Any] = {"datapoint_id": dp.id}
    for r in dp.categorical:
        payload[r.namespace] = list(r.allow)
    for r in dp.numeric:
        payload[r.namespace] = r.value_double
    return payload


async def _retry_transient(
    settings: VectorStoreSettings,
    coro_func,
    *args,
    **kwargs,
):
    """Execute coroutine with retries for transient errors."""
    last_exc = None
    for attempt in range(1, settings.retries + 1):
        try:
            return await coro_func(*args, **kwargs)
        except VectorSchemaMismatchError:
            raise
        except Exception as e:
            last_exc = e
            if attempt < settings.retries:
                delay = settings.retry_backoff_base_s * (2 ** (attempt - 1))
                logger.warning(
                    "Qdrant call failed (attempt %s/%s), retrying in %.2fs: %s",
                    attempt, settings.retries, delay, e,
                )
                await asyncio.sleep(delay)
    raise VectorStoreError(
        f"Qdrant call failed after {settings.retries} attempts: {last_exc}"
    ) from last_exc


class QdrantIndexRepo:
    """The product index. Returns the collection name as the index resource id."""

    def __init__(
        self,
        client: AsyncQdrantClient,
        settings: VectorStoreSettings | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or VectorStoreSettings()

    @property
    def collection(self) -> str:
        return self._settings.collection

    async def health(self) -> bool:
        """Check connectivity to Qdrant."""
        try:
            await self._client.get_collections()
            return True
        except Exception as e:
            logger.warning("Qdrant health check failed: %s", e)
            return False

    async def close(self) -> None:
        await self._client.close()

    async def replace_all(self, datapoints: Iterable[Datapoint]) -> int:
        """Replace the whole collection with datapoints. Returns points written."""
        it = iter(datapoints)
        first = next(it, None)
        if first is None:
            raise EmptyDatasetError(f"Refusing to replace {self.collection} with an empty dataset")
        await _retry_transient(
            self._settings,
            recreate_collection,
            self._client,
            self.collection,
            len(first.embedding),
            self._settings.distance,
        )
        return await self._write(_prepend(first, it))

    async def upsert(self, datapoints: Iterable[Datapoint]) -> int:
        """Merge datapoints by id. Creates the collection if missing."""
        it = iter(datapoints)
        first = next(it, None)
        if first is None:
            logger.info("No datapoints to upsert into %s", self.collection)
            return 0
        await _retry_transient(
            self._settings,
            ensure_collection,
            self._client,
            self.collection,
            len(first.embedding),
            self._settings.distance,
        )
        return await self._write(_prepend(first, it))

    async def _write(self, datapoints: Iterator[Datapoint]) -> int:
        batch_size = self._settings.upsert_batch_size
        keyword_fields: set[str] = set()
        float_fields: set[str] = set()
        written = 0
        batch_no = 0
        while True:
            batch = list(islice(datapoints, batch_size))
            if not batch:
                break
            batch_no += 1
            points = []
            for dp in batch:
                keyword_fields.update(r.namespace for r in dp.categorical)
                float_fields.update(r.namespace for r in dp.numeric)
                points.append(
                    qdrant_models.PointStruct(
                        id=point_id_for(dp.id),
                        vector=dp.embedding,
                        payload=_payload(dp),
                    )
                )
            await _retry_transient(
                self._settings,
                self._client.upsert,
                collection_name=self.collection,
                points=points,
            )
            written += len(points)
            logger.info(
                "Upserted %s points to %s (batch %s)",
                len(points), self.collection, batch_no,
            )
        await _retry_transient(
            self._settings,
            ensure_payload_indexes,
            self._client,
            self.collection,
            keyword_fields,
            float_fields,
        )
        return written

    async def count(self) -> int:
        async def _do_count() -> int:
            result = await self._client.count(collection_name=self.collection, exact=True)
            return result.count

        return await _retry_transient(self._settings, _do_count)

    async def get(self, datapoint_id: str) -> dict[str, Any] | None:
        """Stored payload and vector for one datapoint, or None."""
        records = await self._client.retrieve(
            collection_name=self.collection,
            ids=[point_id_for(datapoint_id)],
            with_payload=True,
            with_vectors=True,
        )
        if not records:
            return None
        rec = records[0]
        return {"payload": dict(rec.payload or {}), "vector": list(rec.vector or [])}


def _prepend(first: Datapoint, rest: Iterator[Datapoint]) -> Iterator[Datapoint]:
    yield first
    yield from rest
