"""Transform stage: stream-merge exported metadata with embedding shards into datapoints.

Both inputs are read through lazily advanced line iterators and the
output is written line by line, so memory use does not grow with the
catalog. Shards are read in filename order, which is the only thing
that reconstructs submission order across shard boundaries.
"""
from __future__ import annotations

import json
import logging
import time
from contextlib import ExitStack, closing
from typing import Any, Iterable, Iterator

from pydantic import ValidationError

from catalog_index.errors import ObjectNotFound, RecordLevelSkip, StorageUnavailable
from catalog_index.pipeline.models import TransformResult
from catalog_index.pipeline.restricts import derive_restricts
from catalog_index.pipeline.settings import PipelineSettings
from catalog_index.storage.ports import ObjectStorePort
from catalog_index.storage.uris import ObjectUri
from catalog_index.vectorstore.models import Datapoint

logger = logging.getLogger(__name__)


def list_shards(store: ObjectStorePort, prefix_uri: str, marker: str) -> list[str]:
    """Shard objects under prefix, sorted by object name ascending."""
    prefix = ObjectUri.parse(prefix_uri).as_prefix()
    shards = []
    for uri in store.list_prefix(str(prefix)):
        parsed = ObjectUri.parse(uri)
        if parsed.is_prefix or marker not in parsed.name:
            continue
        shards.append(parsed)
    shards.sort(key=lambda u: u.path)
    return [str(u) for u in shards]


def iter_lines(store: ObjectStorePort, uri: str) -> Iterator[str]:
    """Non-blank lines of one object, read sequentially."""
    with store.open_reader(uri) as fh:
        for line in fh:
            if line.strip():
                yield line


def iter_shard_lines(store: ObjectStorePort, shard_uris: Iterable[str]) -> Iterator[str]:
    """One continuous line sequence across shards; a shard is exhausted before the next opens."""
    for uri in shard_uris:
        logger.debug("Reading embedding shard: %s", uri)
        yield from iter_lines(store, uri)


def extract_embedding_values(response: dict[str, Any]) -> list[Any] | None:
    """values of the first prediction: {"predictions":[{"embeddings":{"values":[...]}}]}."""
    predictions = response.get("predictions")
    if not isinstance(predictions, list) or not predictions:
        return None
    first = predictions[0]
    if not isinstance(first, dict):
        return None
    embeddings = first.get("embeddings")
    if not isinstance(embeddings, dict):
        return None
    values = embeddings.get("values")
    if not isinstance(values, list) or not values:
        return None
    return values


def build_datapoint(metadata_line: str, embedding_line: str, position: int) -> Datapoint:
    """Pair one metadata record with one embedding response. Raises RecordLevelSkip."""
    try:
        metadata = json.loads(metadata_line)
        response = json.loads(embedding_line)
    except json.JSONDecodeError as e:
        raise RecordLevelSkip(f"invalid JSON: {e}", position=position) from e
    if not isinstance(metadata, dict) or not isinstance(response, dict):
        raise RecordLevelSkip("record is not a JSON object", position=position)

    values = extract_embedding_values(response)
    if values is None:
        raise RecordLevelSkip("no embedding values in prediction", position=position)
    datapoint_id = metadata.get("id")
    if datapoint_id is None or not str(datapoint_id).strip():
        raise RecordLevelSkip("no id in metadata", position=position)

    try:
        return Datapoint(
            id=str(datapoint_id),
            embedding=[float(v) for v in values],
            restricts=derive_restricts(metadata),
        )
    except (TypeError, ValueError, ValidationError) as e:
        raise RecordLevelSkip(f"invalid record: {e}", position=position) from e


class TransformStage:
    """transform(metadataUri, embeddingsPrefix, outputUri) -> transformed count."""

    def __init__(
        self,
        store: ObjectStorePort | None,
        settings: PipelineSettings | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or PipelineSettings()

    def is_available(self) -> bool:
        return self._store is not None

    def transform(self, metadata_uri: str, embeddings_prefix: str, output_uri: str) -> TransformResult:
        if self._store is None:
            raise StorageUnavailable("Object storage not configured; cannot transform embeddings")
        store = self._store

        logger.info(
            "Transforming embeddings (streaming): metadata=%s, embeddings=%s, output=%s",
            metadata_uri, embeddings_prefix, output_uri,
        )
        start = time.monotonic()
        shards = list_shards(store, embeddings_prefix, self._settings.shard_name_marker)
        if not shards:
            logger.warning("No embedding shards found under %s", embeddings_prefix)
            return TransformResult(output_uri=output_uri, transformed=0)
        if not store.exists(metadata_uri):
            raise ObjectNotFound(metadata_uri)
        logger.info("Found %s embedding shards", len(shards))

        transformed = 0
        failed = 0
        pairs = 0
        leftover_metadata = 0
        leftover_embeddings = 0
        progress_every = self._settings.transform_progress_every

        with ExitStack() as stack:
            metadata_lines = stack.enter_context(closing(iter_lines(store, metadata_uri)))
            embedding_lines = stack.enter_context(closing(iter_shard_lines(store, shards)))
            out = stack.enter_context(store.open_writer(output_uri))
            while True:
                metadata_line = next(metadata_lines, None)
                if metadata_line is None:
                    leftover_embeddings = sum(1 for _ in embedding_lines)
                    break
                embedding_line = next(embedding_lines, None)
                if embedding_line is None:
                    leftover_metadata = 1 + sum(1 for _ in metadata_lines)
                    break

                pairs += 1
                try:
                    datapoint = build_datapoint(metadata_line, embedding_line, pairs)
                except RecordLevelSkip as e:
                    logger.warning("Failed to transform record %s: %s", pairs, e)
                    failed += 1
                    continue
                out.write(datapoint.to_json_line() + "\n")
                transformed += 1

                if pairs % progress_every == 0:
                    logger.info("Progress: processed %s records, transformed %s", pairs, transformed)

        metadata_records = pairs + leftover_metadata
        embedding_records = pairs + leftover_embeddings
        if metadata_records != embedding_records:
            logger.warning(
                "Record count mismatch: %s metadata records vs %s embedding records; "
                "merged the first %s only",
                metadata_records, embedding_records, pairs,
            )

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Transformed %s embeddings (%s failed) to %s in %sms",
            transformed, failed, output_uri, duration_ms,
        )
        return TransformResult(
            output_uri=output_uri,
            transformed=transformed,
            failed=failed,
            metadata_records=metadata_records,
            embedding_records=embedding_records,
            shard_count=len(shards),
            duration_ms=duration_ms,
        )
