from catalog_index.db.repositories.catalog_repo import CatalogRepo
from catalog_index.db.repositories.indexing_run_repo import IndexingRunRepo

__all__ = ["CatalogRepo", "IndexingRunRepo"]
