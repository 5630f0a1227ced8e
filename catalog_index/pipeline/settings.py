"""Batch indexing pipeline configuration. Env prefix: PIPELINE_."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Path convention, paging, polling and index update defaults."""

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    input_prefix: str = Field(default="input", description="Prefix for exported content/metadata files")
    embeddings_prefix: str = Field(default="embeddings", description="Prefix the batch job writes shards under")
    vectors_prefix: str = Field(default="vectors", description="Prefix for index-ready datapoint files")
    export_page_size: int = Field(default=500, ge=1, description="Catalog items per page during export")
    export_progress_pages: int = Field(default=10, ge=1, description="Log export progress every N pages")
    poll_interval_s: float = Field(default=30.0, gt=0, description="Seconds between batch job polls")
    wait_timeout_s: float = Field(default=7200.0, ge=0, description="Max seconds to wait for the batch job")
    complete_overwrite: bool = Field(
        default=True,
        description="Replace the whole index on update (False merges by datapoint id)",
    )
    shard_name_marker: str = Field(
        default="prediction",
        description="Only objects whose filename contains this marker are embedding shards",
    )
    transform_progress_every: int = Field(default=5000, ge=1, description="Log transform progress every N records")
