"""Minimal Protocols the orchestrator depends on (not concrete implementations)."""
from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from catalog_index.pipeline.models import PipelineResult, PipelineStage
from catalog_index.vectorstore.models import Datapoint


@runtime_checkable
class VectorIndexPort(Protocol):
    """External vector index: full replace or merge by datapoint id."""

    @property
    def collection(self) -> str:
        ...

    async def replace_all(self, datapoints: Iterable[Datapoint]) -> int:
        ...

    async def upsert(self, datapoints: Iterable[Datapoint]) -> int:
        ...

    async def health(self) -> bool:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class RunRecorderPort(Protocol):
    """Persists run progress for operators. Must not raise into the pipeline."""

    def mark_stage(self, run_id: str, stage: PipelineStage) -> None:
        ...

    def record_result(self, result: PipelineResult) -> None:
        ...
