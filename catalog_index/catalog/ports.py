"""Catalog read port (owned by the catalog service)."""
from typing import Protocol, runtime_checkable

from catalog_index.catalog.models import CatalogPage


@runtime_checkable
class CatalogReaderPort(Protocol):
    """pagedQuery(page, pageSize). Pages must be ordered by a stable key."""

    def paged_query(self, page: int, page_size: int) -> CatalogPage:
        ...
