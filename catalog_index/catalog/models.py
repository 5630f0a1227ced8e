"""Catalog DTOs consumed by the export stage."""
from __future__ import annotations

from pydantic import BaseModel, Field


class CatalogItem(BaseModel):
    """One product as exposed by the catalog read interface."""

    id: str = Field(..., description="Product id (stable primary key)")
    name: str | None = Field(default=None)
    description: str | None = Field(default=None)
    brand: str | None = Field(default=None)
    category_id: str | None = Field(default=None)
    category_name: str | None = Field(default=None)
    price: float | None = Field(default=None)
    rating: float | None = Field(default=None)


class CatalogPage(BaseModel):
    """One page of a paged catalog query."""

    items: list[CatalogItem] = Field(default_factory=list)
    page: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages
