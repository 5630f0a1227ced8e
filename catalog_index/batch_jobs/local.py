"""In-process batch embedding jobs over the Ollama client.

Each submitted job runs as an asyncio task: it streams the content file,
embeds it in request-sized batches and writes JSONL shards named
``<prefix>-00000.jsonl``, ``<prefix>-00001.jsonl`` ... under the output
prefix. Every input line yields exactly one output line in input order;
a line that cannot be embedded is written with empty predictions and a
status so the shard stays aligned with the content file.
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import ExitStack
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, TextIO
from uuid import uuid4

from catalog_index.batch_jobs.models import JobHandle, JobState
from catalog_index.batch_jobs.settings import BatchJobSettings
from catalog_index.embeddings.ollama import OllamaEmbedClient
from catalog_index.embeddings.settings import EmbedSettings
from catalog_index.errors import IndexingError
from catalog_index.storage.ports import ObjectStorePort
from catalog_index.storage.uris import ObjectUri

logger = logging.getLogger(__name__)


@dataclass
class _LocalJob:
    handle: JobHandle
    state: JobState = JobState.PENDING
    records: int = 0
    shards: list[str] = field(default_factory=list)
    error: str | None = None
    task: asyncio.Task | None = None


def _parse_instance(line: str) -> dict[str, Any] | None:
    try:
        instance = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(instance, dict) or not isinstance(instance.get("content"), str):
        return None
    return instance


class _ShardWriter:
    """Rolls over to a new shard object every shard_size lines."""

    def __init__(self, store: ObjectStorePort, prefix: ObjectUri, file_prefix: str, shard_size: int) -> None:
        self._store = store
        self._prefix = prefix
        self._file_prefix = file_prefix
        self._shard_size = shard_size
        self._stack = ExitStack()
        self._current: TextIO | None = None
        self._in_shard = 0
        self.shards: list[str] = []

    def write(self, record: dict[str, Any]) -> None:
        if self._current is None or self._in_shard >= self._shard_size:
            self._roll()
        self._current.write(json.dumps(record, separators=(",", ":")) + "\n")
        self._in_shard += 1

    def _roll(self) -> None:
        self._stack.close()
        self._stack = ExitStack()
        uri = str(self._prefix.join(f"{self._file_prefix}-{len(self.shards):05d}.jsonl"))
        self._current = self._stack.enter_context(self._store.open_writer(uri))
        self._in_shard = 0
        self.shards.append(uri)

    def close(self) -> None:
        self._stack.close()

    def abort(self) -> None:
        """Call from an except block: the open shard sees the exception and is discarded."""
        self._stack.__exit__(*sys.exc_info())


class LocalBatchEmbeddingService:
    """BatchEmbeddingPort backed by asyncio tasks. Job state lives in this instance.

    Only the most recent ``retained_jobs`` finished jobs stay pollable.
    """

    def __init__(
        self,
        store: ObjectStorePort,
        embed_client: OllamaEmbedClient | None = None,
        settings: BatchJobSettings | None = None,
        embed_settings: EmbedSettings | None = None,
    ) -> None:
        self._store = store
        self._embed_settings = embed_settings or EmbedSettings()
        self._embed = embed_client or OllamaEmbedClient(self._embed_settings)
        self._settings = settings or BatchJobSettings()
        self._jobs: dict[str, _LocalJob] = {}

    async def submit(self, input_uri: str, output_prefix: str) -> JobHandle:
        name = f"local-batch-jobs/{uuid4().hex}"
        handle = JobHandle(
            name=name,
            input_uri=input_uri,
            output_prefix=str(ObjectUri.parse(output_prefix).as_prefix()),
            submitted_at=datetime.now(timezone.utc),
        )
        job = _LocalJob(handle=handle)
        self._jobs[name] = job
        job.task = asyncio.create_task(self._run(job), name=name)
        logger.info("Batch embedding job submitted: %s (input=%s)", name, input_uri)
        return handle

    def _job(self, job_name: str) -> _LocalJob:
        job = self._jobs.get(job_name)
        if job is None:
            raise IndexingError(f"Unknown batch job: {job_name}", code="JOB_NOT_FOUND")
        return job

    async def get_state(self, job_name: str) -> JobState:
        return self._job(job_name).state

    async def get_output_uri(self, job_name: str) -> str:
        job = self._job(job_name)
        if job.state is not JobState.SUCCEEDED:
            raise IndexingError(
                f"Output of {job_name} not available in state {job.state.value}",
                code="JOB_OUTPUT_UNAVAILABLE",
            )
        return job.handle.output_prefix

    async def close(self) -> None:
        tasks = [j.task for j in self._jobs.values() if j.task and not j.task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, job: _LocalJob) -> None:
        job.state = JobState.RUNNING
        try:
            await self._process(job)
        finally:
            self._forget_finished()

    def _forget_finished(self) -> None:
        finished = [name for name, j in self._jobs.items() if j.state.is_terminal]
        for name in finished[: max(0, len(finished) - self._settings.retained_jobs)]:
            del self._jobs[name]
            logger.debug("Forgot finished batch job %s", name)

    async def _process(self, job: _LocalJob) -> None:
        writer = _ShardWriter(
            self._store,
            ObjectUri.parse(job.handle.output_prefix),
            self._settings.shard_file_prefix,
            self._settings.shard_size,
        )
        batch_size = self._embed_settings.request_batch_size
        try:
            with self._store.open_reader(job.handle.input_uri) as fh:
                batch: list[dict[str, Any] | None] = []
                for line in fh:
                    if not line.strip():
                        continue
                    batch.append(_parse_instance(line))
                    if len(batch) >= batch_size:
                        await self._embed_batch(batch, writer)
                        job.records += len(batch)
                        batch = []
                if batch:
                    await self._embed_batch(batch, writer)
                    job.records += len(batch)
            writer.close()
        except asyncio.CancelledError:
            writer.abort()
            job.state = JobState.CANCELLED
            logger.warning("Batch job %s cancelled after %s records", job.handle.name, job.records)
            raise
        except Exception as e:
            writer.abort()
            job.state = JobState.FAILED
            job.error = str(e)
            logger.exception("Batch job %s failed after %s records", job.handle.name, job.records)
            return
        job.shards = writer.shards
        job.state = JobState.SUCCEEDED
        logger.info(
            "Batch job %s succeeded: %s records in %s shards",
            job.handle.name, job.records, len(job.shards),
        )

    async def _embed_batch(self, batch: list[dict[str, Any] | None], writer: _ShardWriter) -> None:
        texts = [inst["content"] for inst in batch if inst is not None]
        vectors = await self._embed.embed_texts(texts)
        if len(vectors) != len(texts):
            raise IndexingError(
                f"Embedding service returned {len(vectors)} vectors for {len(texts)} texts",
                code="EMBED_COUNT_MISMATCH",
            )
        it = iter(vectors)
        for inst in batch:
            if inst is None:
                writer.write({"instance": None, "predictions": [], "status": "invalid instance"})
                continue
            writer.write({"instance": inst, "predictions": [{"embeddings": {"values": next(it)}}]})
