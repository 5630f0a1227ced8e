"""Paged reads over active products, ordered by primary key."""
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from catalog_index.db.models.catalog import PRODUCT_STATUS_ACTIVE, Product


class CatalogRepo:
    """Read-only queries the export stage needs."""

    def count_active(self, session: Session) -> int:
        return session.execute(
            select(func.count()).select_from(Product).where(Product.status == PRODUCT_STATUS_ACTIVE)
        ).scalar_one()

    def list_active_page(self, session: Session, page: int, page_size: int) -> list[Product]:
        """One page of active products. Ordered by id so pages are stable across calls."""
        rows = session.execute(
            select(Product)
            .options(selectinload(Product.category))
            .where(Product.status == PRODUCT_STATUS_ACTIVE)
            .order_by(Product.id)
            .offset(page * page_size)
            .limit(page_size)
        ).scalars().all()
        return list(rows)
