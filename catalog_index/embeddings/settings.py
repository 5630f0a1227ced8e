"""Ollama embedding client configuration. Env prefix: EMBED_."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbedSettings(BaseSettings):
    """Used by the local batch backend to embed content lines."""

    model_config = SettingsConfigDict(
        env_prefix="EMBED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ollama_api_base: str = Field(default="http://localhost:11434", description="Ollama server URL")
    ollama_model: str = Field(default="nomic-embed-text", description="Embedding model name")
    ollama_keep_alive: str = Field(default="30m", description="Keep the model loaded between batches")
    embed_timeout: float = Field(default=180.0, ge=1.0, description="Per-request timeout; cold loads are slow")
    request_batch_size: int = Field(default=64, ge=1, description="Texts per /api/embed request")
    retry_attempts: int = Field(default=3, ge=1, description="Attempts per request before giving up")
    retry_delay_s: float = Field(default=3.0, ge=0, description="Pause between attempts")
    dims: int = Field(default=768, ge=1, description="Expected vector size; mismatches are logged")
