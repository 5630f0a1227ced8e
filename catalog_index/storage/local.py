"""Local filesystem object store: scheme://bucket/path -> <root>/<bucket>/<path>."""
from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, TextIO

from catalog_index.errors import ObjectNotFound
from catalog_index.storage.uris import ObjectUri

logger = logging.getLogger(__name__)


class LocalObjectStore:
    """Object store over a local directory. Writers publish atomically on close."""

    def __init__(self, root: str | Path, scheme: str = "file") -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._scheme = scheme

    @property
    def scheme(self) -> str:
        return self._scheme

    def _path(self, uri: str) -> Path:
        parsed = ObjectUri.parse(uri)
        if parsed.scheme != self._scheme:
            raise ValueError(
                f"Unsupported URI scheme for this store: {uri} (store serves {self._scheme}://, see STORAGE_SCHEME)"
            )
        path = (self._root / parsed.bucket / parsed.path).resolve()
        if self._root.resolve() not in path.parents and path != self._root.resolve():
            raise ValueError(f"URI escapes store root: {uri}")
        return path

    def _uri(self, path: Path) -> str:
        rel = path.relative_to(self._root.resolve())
        bucket, *rest = rel.parts
        return str(ObjectUri(self._scheme, bucket, "/".join(rest)))

    def put_text(self, uri: str, text: str) -> str:
        with self.open_writer(uri) as fh:
            fh.write(text)
        return uri

    @contextmanager
    def open_writer(self, uri: str) -> Iterator[TextIO]:
        path = self._path(uri)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".part", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
                yield fh
            os.replace(tmp, path)
            logger.debug("Wrote %s", uri)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    @contextmanager
    def open_reader(self, uri: str) -> Iterator[TextIO]:
        path = self._path(uri)
        if not path.is_file():
            raise ObjectNotFound(uri)
        with open(path, "r", encoding="utf-8") as fh:
            yield fh

    def list_prefix(self, prefix_uri: str) -> list[str]:
        parsed = ObjectUri.parse(prefix_uri)
        base = self._path(str(ObjectUri(parsed.scheme, parsed.bucket, "")))
        if not base.is_dir():
            return []
        out = []
        for path in base.resolve().rglob("*"):
            if not path.is_file() or path.name.endswith(".part"):
                continue
            uri = self._uri(path)
            if ObjectUri.parse(uri).path.startswith(parsed.path):
                out.append(uri)
        return out

    def exists(self, uri: str) -> bool:
        return self._path(uri).is_file()
