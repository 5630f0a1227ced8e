"""AsyncQdrantClient construction from settings."""
from qdrant_client import AsyncQdrantClient

from catalog_index.vectorstore.settings import VectorStoreSettings


def build_qdrant_client(settings: VectorStoreSettings | None = None) -> AsyncQdrantClient:
    """Server client, or qdrant-client's embedded local mode when url is ':memory:'."""
    s = settings or VectorStoreSettings()
    if s.url == ":memory:":
        return AsyncQdrantClient(location=":memory:")
    return AsyncQdrantClient(url=s.url, api_key=s.api_key, prefer_grpc=s.prefer_grpc, timeout=s.timeout_s)
