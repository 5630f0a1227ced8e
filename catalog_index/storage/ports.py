"""Port interface for durable object storage."""
from typing import ContextManager, Iterable, Protocol, TextIO, runtime_checkable


@runtime_checkable
class ObjectStorePort(Protocol):
    """create, read, list-by-prefix, sequential write. All addresses are scheme://bucket/path."""

    def put_text(self, uri: str, text: str) -> str:
        """Write a whole object; return its URI."""
        ...

    def open_writer(self, uri: str) -> ContextManager[TextIO]:
        """Sequential text writer. The object becomes visible when the context exits cleanly."""
        ...

    def open_reader(self, uri: str) -> ContextManager[TextIO]:
        """Lazy text stream. Raises ObjectNotFound if missing."""
        ...

    def list_prefix(self, prefix_uri: str) -> Iterable[str]:
        """Object URIs under prefix (recursive). Order is unspecified."""
        ...

    def exists(self, uri: str) -> bool:
        ...
