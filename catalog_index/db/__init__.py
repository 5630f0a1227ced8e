"""Database layer: catalog read mappings and indexing run records (SQLAlchemy 2.0)."""
from catalog_index.db.base import Base
from catalog_index.db.config import DBConfig
from catalog_index.db.session import build_session_factory, init_schema, session_scope

__all__ = ["Base", "DBConfig", "build_session_factory", "init_schema", "session_scope"]
