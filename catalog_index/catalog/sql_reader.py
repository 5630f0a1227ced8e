"""SQLAlchemy-backed catalog reader over the products/categories tables."""
from __future__ import annotations

import math

from sqlalchemy.orm import sessionmaker

from catalog_index.catalog.models import CatalogItem, CatalogPage
from catalog_index.db.models.catalog import Product
from catalog_index.db.repositories.catalog_repo import CatalogRepo
from catalog_index.db.session import session_scope


def _to_item(product: Product) -> CatalogItem:
    return CatalogItem(
        id=str(product.id),
        name=product.name,
        description=product.description,
        brand=product.brand,
        category_id=product.category_id,
        category_name=product.category.name if product.category else None,
        price=float(product.price) if product.price is not None else None,
        rating=float(product.rating) if product.rating is not None else None,
    )


class SqlCatalogReader:
    """Active products in primary-key order, offset pagination."""

    def __init__(self, session_factory: sessionmaker, repo: CatalogRepo | None = None) -> None:
        self._session_factory = session_factory
        self._repo = repo or CatalogRepo()

    def paged_query(self, page: int, page_size: int) -> CatalogPage:
        with session_scope(self._session_factory) as session:
            total = self._repo.count_active(session)
            rows = self._repo.list_active_page(session, page, page_size)
            items = [_to_item(p) for p in rows]
        return CatalogPage(
            items=items,
            page=page,
            total_pages=math.ceil(total / page_size) if page_size else 0,
        )
