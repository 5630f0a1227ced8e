"""Qdrant settings for the product index. Env prefix: QDRANT_."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class VectorStoreSettings(BaseSettings):
    """One collection holds the whole product index; its name is the index resource id."""

    model_config = SettingsConfigDict(
        env_prefix="QDRANT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str = Field(default="http://localhost:6333", description="Server URL, or ':memory:' for local mode")
    api_key: str | None = Field(default=None)
    prefer_grpc: bool = Field(default=False)
    timeout_s: float = Field(default=10.0)
    retries: int = Field(default=3, ge=1, description="Attempts per call before VectorStoreError")
    retry_backoff_base_s: float = Field(default=0.5, description="First retry delay; doubles each attempt")
    collection: str = Field(default="catalog_products")
    distance: str = Field(default="cosine", description="cosine, dot or euclid")
    upsert_batch_size: int = Field(default=256, ge=1, description="Points per upsert request")
