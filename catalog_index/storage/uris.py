"""scheme://bucket/path URIs."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ObjectUri:
    scheme: str
    bucket: str
    path: str = ""

    @classmethod
    def parse(cls, uri: str) -> "ObjectUri":
        scheme, sep, rest = uri.partition("://")
        if not sep or not scheme:
            raise ValueError(f"Not an object URI (missing scheme): {uri}")
        bucket, _, path = rest.partition("/")
        if not bucket:
            raise ValueError(f"Not an object URI (missing bucket): {uri}")
        return cls(scheme=scheme, bucket=bucket, path=path)

    @property
    def name(self) -> str:
        """Last path segment (the object's filename)."""
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def is_prefix(self) -> bool:
        return self.path == "" or self.path.endswith("/")

    def join(self, *parts: str) -> "ObjectUri":
        segments = [self.path.rstrip("/")] if self.path else []
        segments.extend(p.strip("/") for p in parts if p)
        return ObjectUri(self.scheme, self.bucket, "/".join(s for s in segments if s))

    def as_prefix(self) -> "ObjectUri":
        if self.is_prefix:
            return self
        return ObjectUri(self.scheme, self.bucket, self.path + "/")

    def __str__(self) -> str:
        return f"{self.scheme}://{self.bucket}/{self.path}"
