"""Catalog database settings. Env prefix: DB_."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DBConfig(BaseSettings):
    """Where the catalog tables live. The indexing_runs table is created alongside them."""

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_url: str = Field(default="sqlite:///./data/catalog.db", description="SQLAlchemy URL of the catalog DB")
    echo_sql: bool = Field(default=False)
    pool_pre_ping: bool = Field(default=True, description="Ignored for SQLite")
    sqlite_busy_timeout_ms: int = Field(default=5000, description="Wait this long on a locked DB")
    sqlite_journal_mode: str = Field(default="WAL")
    sqlite_synchronous: str = Field(default="NORMAL")
    sqlite_foreign_keys: bool = Field(default=True)
