"""Object storage configuration. Env prefix: STORAGE_."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Durable object store settings."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    scheme: str = Field(
        default="file",
        description=(
            "URI scheme used for pipeline objects. With backend=http set it to the remote "
            "service's scheme (e.g. gs) and point local_root at the bucket mount"
        ),
    )
    bucket: str = Field(default="catalog-index", description="Bucket holding every run's objects")
    local_root: str = Field(
        default="",
        description="Directory backing the local object store; empty means no durable store",
    )
