"""ORM models. Import all so Base.metadata has every table."""
from catalog_index.db.models.catalog import Category, Product
from catalog_index.db.models.indexing_run import IndexingRun

__all__ = ["Category", "IndexingRun", "Product"]
