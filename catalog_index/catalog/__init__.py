"""Catalog read interface: DTOs, port, SQL reader."""
from catalog_index.catalog.models import CatalogItem, CatalogPage
from catalog_index.catalog.ports import CatalogReaderPort
from catalog_index.catalog.sql_reader import SqlCatalogReader

__all__ = ["CatalogItem", "CatalogPage", "CatalogReaderPort", "SqlCatalogReader"]
