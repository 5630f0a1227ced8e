"""Catalog DB engine. SQLite connections get their PRAGMAs on connect."""
from sqlalchemy import event
from sqlalchemy.engine import Engine, create_engine

from catalog_index.db.config import DBConfig


def is_sqlite(db_url: str) -> bool:
    return db_url.startswith("sqlite")


def sqlite_pragmas(cfg: DBConfig) -> list[str]:
    """PRAGMA statements run on every new SQLite connection, in order."""
    return [
        f"PRAGMA journal_mode={cfg.sqlite_journal_mode}",
        f"PRAGMA foreign_keys={'ON' if cfg.sqlite_foreign_keys else 'OFF'}",
        f"PRAGMA synchronous={cfg.sqlite_synchronous}",
        f"PRAGMA busy_timeout={cfg.sqlite_busy_timeout_ms}",
    ]


def create_engine_from_config(cfg: DBConfig) -> Engine:
    """Sync engine for the catalog reader and run recorder."""
    sqlite = is_sqlite(cfg.db_url)
    # journal_mode cannot change inside a transaction, so pysqlite runs in autocommit.
    engine = create_engine(
        cfg.db_url,
        echo=cfg.echo_sql,
        connect_args={"isolation_level": None} if sqlite else {},
        pool_pre_ping=cfg.pool_pre_ping and not sqlite,
    )
    if sqlite:
        statements = sqlite_pragmas(cfg)

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_conn, _record) -> None:
            cursor = dbapi_conn.cursor()
            try:
                for stmt in statements:
                    cursor.execute(stmt)
            finally:
                cursor.close()

    return engine
