"""Collection creation, validation and replacement."""
from __future__ import annotations

import logging

from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models as qdrant_http

from catalog_index.vectorstore.errors import VectorSchemaMismatchError

logger = logging.getLogger(__name__)


def _qdrant_distance(s: str) -> qdrant_http.Distance:
    """Map string distance to Qdrant enum."""
    m = {
        "cosine": qdrant_http.Distance.COSINE,
        "dot": qdrant_http.Distance.DOT,
        "euclid": qdrant_http.Distance.EUCLID,
    }
    return m.get(s.lower(), qdrant_http.Distance.COSINE)


async def _create(client: AsyncQdrantClient, name: str, dims: int, distance: str) -> None:
    await client.create_collection(
        collection_name=name,
        vectors_config=qdrant_http.VectorParams(size=dims, distance=_qdrant_distance(distance)),
        hnsw_config=qdrant_http.HnswConfigDiff(m=16, ef_construct=128),
    )


async def recreate_collection(client: AsyncQdrantClient, name: str, dims: int, distance: str) -> None:
    """Drop the collection if present and create it empty."""
    if await client.collection_exists(name):
        await client.delete_collection(name)
        logger.info("Dropped collection %s for complete overwrite", name)
    await _create(client, name, dims, distance)


async def ensure_collection(client: AsyncQdrantClient, name: str, dims: int, distance: str) -> None:
    """Create if missing. Validate if exists.

    Raises VectorSchemaMismatchError if existing collection has wrong vector size or distance.
    """
    if not await client.collection_exists(name):
        await _create(client, name, dims, distance)
        return
    info = await client.get_collection(name)
    vectors_config = info.config.params.vectors
    expected = _qdrant_distance(distance)
    if isinstance(vectors_config, qdrant_http.VectorParams):
        if vectors_config.size != dims or vectors_config.distance != expected:
            raise VectorSchemaMismatchError(
                f"Collection {name} has size={vectors_config.size} distance={vectors_config.distance}, "
                f"expected size={dims} distance={expected}. Run a complete overwrite."
            )


async def ensure_payload_indexes(
    client: AsyncQdrantClient,
    name: str,
    keyword_fields: set[str],
    float_fields: set[str],
) -> None:
    """Index restrict namespaces so filtered queries stay fast."""
    fields = [(f, qdrant_http.PayloadSchemaType.KEYWORD) for f in sorted(keyword_fields)]
    fields += [(f, qdrant_http.PayloadSchemaType.FLOAT) for f in sorted(float_fields)]
    for field, schema_type in fields:
        await client.create_payload_index(
            collection_name=name,
            field_name=field,
            field_schema=schema_type,
        )
