"""Session factory and transactional scope.

Session factories are built explicitly and handed to the readers and
recorders that need them; nothing here keeps module-level engine state.
"""
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from catalog_index.db.base import Base
from catalog_index.db.config import DBConfig
from catalog_index.db.engine import create_engine_from_config


def build_session_factory(cfg: DBConfig | None = None, engine: Engine | None = None) -> sessionmaker:
    """Create a sessionmaker bound to a new engine (or the given one)."""
    bind = engine or create_engine_from_config(cfg or DBConfig())
    return sessionmaker(
        bind=bind,
        autoflush=True,
        expire_on_commit=False,
        autobegin=True,
    )


def init_schema(session_factory: sessionmaker) -> None:
    """Create tables that do not exist yet. Catalog tables are owned elsewhere in production."""
    import catalog_index.db.models  # noqa: F401

    Base.metadata.create_all(session_factory.kw["bind"])


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Session context: commit on success, rollback + re-raise on exception."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
