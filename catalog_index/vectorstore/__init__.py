"""Vector store (Qdrant) module: datapoint model and the product index."""

from catalog_index.vectorstore.client import build_qdrant_client
from catalog_index.vectorstore.errors import VectorSchemaMismatchError, VectorStoreError
from catalog_index.vectorstore.models import CategoricalRestrict, Datapoint, NumericRestrict, Restrict
from catalog_index.vectorstore.repo import QdrantIndexRepo, point_id_for
from catalog_index.vectorstore.settings import VectorStoreSettings

__all__ = [
    "build_qdrant_client",
    "CategoricalRestrict",
    "Datapoint",
    "NumericRestrict",
    "QdrantIndexRepo",
    "Restrict",
    "VectorSchemaMismatchError",
    "VectorStoreError",
    "VectorStoreSettings",
    "point_id_for",
]
