"""
Database engine and schema setup.
"""
from functools import lru_cache

from sqlalchemy import Engine, event
from sqlmodel import SQLModel, create_engine

from .config import settings


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores FOREIGN KEY clauses unless each connection turns them on."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _foreign_keys_on(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@lru_cache
def get_engine() -> Engine:
    connect_args = {}
    if settings.database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(settings.database_url, connect_args=connect_args, echo=settings.sql_echo)
    enable_sqlite_foreign_keys(engine)
    return engine


def create_schema(engine: Engine) -> None:
    """Create all database tables"""
    from . import models  # noqa: F401  registers the tables on SQLModel.metadata
    SQLModel.metadata.create_all(engine)
