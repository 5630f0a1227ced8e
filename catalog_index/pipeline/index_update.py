"""Index update stage: publish a datapoint file (or prefix) to the vector index."""
from __future__ import annotations

import logging
import time
from contextlib import closing
from dataclasses import dataclass
from typing import Iterator

from pydantic import ValidationError

from catalog_index.errors import ConfigurationUnavailable, ObjectNotFound, StorageUnavailable
from catalog_index.pipeline.contracts import VectorIndexPort
from catalog_index.pipeline.settings import PipelineSettings
from catalog_index.pipeline.transform import iter_lines
from catalog_index.storage.ports import ObjectStorePort
from catalog_index.storage.uris import ObjectUri
from catalog_index.vectorstore.models import Datapoint

logger = logging.getLogger(__name__)


def resolve_vector_files(store: ObjectStorePort, vectors_uri: str) -> list[str]:
    """One object, or every .jsonl object under a prefix in filename order."""
    uri = ObjectUri.parse(vectors_uri)
    if not uri.is_prefix and store.exists(vectors_uri):
        return [vectors_uri]
    found = [
        ObjectUri.parse(u)
        for u in store.list_prefix(str(uri.as_prefix()))
        if u.endswith(".jsonl")
    ]
    if not found:
        raise ObjectNotFound(vectors_uri)
    found.sort(key=lambda u: u.path)
    return [str(u) for u in found]


@dataclass
class _SkipCount:
    n: int = 0


class IndexUpdateStage:
    def __init__(
        self,
        index: VectorIndexPort | None,
        store: ObjectStorePort | None,
        settings: PipelineSettings | None = None,
    ) -> None:
        self._index = index
        self._store = store
        self._settings = settings or PipelineSettings()

    def is_available(self) -> bool:
        return self._index is not None and self._store is not None

    async def health(self) -> bool:
        return self._index is not None and await self._index.health()

    async def close(self) -> None:
        if self._index is not None:
            await self._index.close()

    def _iter_datapoints(self, files: list[str], skipped: _SkipCount) -> Iterator[Datapoint]:
        for uri in files:
            with closing(iter_lines(self._store, uri)) as lines:
                for lineno, line in enumerate(lines, start=1):
                    try:
                        yield Datapoint.from_json_line(line)
                    except (ValueError, KeyError, TypeError, ValidationError) as e:
                        skipped.n += 1
                        logger.warning("Skipping bad datapoint at %s:%s: %s", uri, lineno, e)

    async def update_index(self, vectors_uri: str, complete_overwrite: bool | None = None) -> str:
        """Replace (default) or merge the index contents. Returns the index resource id."""
        if self._store is None:
            raise StorageUnavailable("Object storage not configured; cannot read datapoints")
        if self._index is None:
            raise ConfigurationUnavailable("Vector index not configured")
        if complete_overwrite is None:
            complete_overwrite = self._settings.complete_overwrite

        files = resolve_vector_files(self._store, vectors_uri)
        mode = "complete overwrite" if complete_overwrite else "incremental"
        logger.info("Updating index %s (%s) from %s", self._index.collection, mode, vectors_uri)
        start = time.monotonic()
        skipped = _SkipCount()

        datapoints = self._iter_datapoints(files, skipped)
        if complete_overwrite:
            written = await self._index.replace_all(datapoints)
        else:
            written = await self._index.upsert(datapoints)

        logger.info(
            "Index %s updated from %s: %s datapoints written, %s skipped in %sms",
            self._index.collection, vectors_uri, written, skipped.n, int((time.monotonic() - start) * 1000),
        )
        return self._index.collection
