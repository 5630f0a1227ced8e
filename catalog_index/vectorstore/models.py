"""Vector datapoints and their restricts.

A restrict is a closed tagged variant: categorical (allow-list) or
numeric (scalar). On the wire the two kinds live in separate arrays,
``restricts`` and ``numeric_restricts``.
"""
from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class CategoricalRestrict(BaseModel):
    kind: Literal["categorical"] = "categorical"
    namespace: str
    allow: list[str]


class NumericRestrict(BaseModel):
    kind: Literal["numeric"] = "numeric"
    namespace: str
    value_double: float


Restrict = Annotated[Union[CategoricalRestrict, NumericRestrict], Field(discriminator="kind")]


class Datapoint(BaseModel):
    """Unit record consumed by the vector index: id + embedding + restricts."""

    id: str = Field(..., min_length=1)
    embedding: list[float] = Field(..., min_length=1)
    restricts: list[Restrict] = Field(default_factory=list)

    @property
    def categorical(self) -> list[CategoricalRestrict]:
        return [r for r in self.restricts if isinstance(r, CategoricalRestrict)]

    @property
    def numeric(self) -> list[NumericRestrict]:
        return [r for r in self.restricts if isinstance(r, NumericRestrict)]

    def to_json_line(self) -> str:
        """Compact, deterministic JSON (no trailing newline). Empty restrict arrays are omitted."""
        out: dict[str, Any] = {"id": self.id, "embedding": self.embedding}
        if self.categorical:
            out["restricts"] = [{"namespace": r.namespace, "allow": r.allow} for r in self.categorical]
        if self.numeric:
            out["numeric_restricts"] = [
                {"namespace": r.namespace, "value_double": r.value_double} for r in self.numeric
            ]
        return json.dumps(out, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_json_line(cls, line: str) -> "Datapoint":
        raw = json.loads(line)
        if not isinstance(raw, dict):
            raise ValueError(f"Datapoint line is not a JSON object: {line[:80]!r}")
        restricts: list[CategoricalRestrict | NumericRestrict] = [
            CategoricalRestrict(namespace=r["namespace"], allow=list(r.get("allow", [])))
            for r in raw.get("restricts", [])
        ]
        restricts.extend(
            NumericRestrict(namespace=r["namespace"], value_double=r["value_double"])
            for r in raw.get("numeric_restricts", [])
        )
        return cls(id=str(raw["id"]), embedding=raw["embedding"], restricts=restricts)
