"""Batch embedding job configuration. Env prefix: BATCH_."""
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BatchJobSettings(BaseSettings):
    """Which batch backend to use and how it writes its output."""

    model_config = SettingsConfigDict(
        env_prefix="BATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["local", "http"] = Field(
        default="local",
        description="local: in-process jobs over Ollama; http: remote batch job service",
    )
    api_base: str = Field(default="", description="Remote batch service URL (backend=http)")
    api_key: str | None = Field(default=None, description="Bearer token for the remote service")
    request_timeout_s: float = Field(default=30.0, ge=1.0, description="Per-request timeout (backend=http)")
    model: str = Field(default="text-embedding-004", description="Model name sent to the remote service")
    shard_size: int = Field(default=10_000, ge=1, description="Records per output shard (backend=local)")
    shard_file_prefix: str = Field(default="prediction", description="Output shard filename prefix (backend=local)")
    retained_jobs: int = Field(
        default=100,
        ge=1,
        description="Finished jobs kept for polling before the oldest are forgotten (backend=local)",
    )
