"""
Alembic environment for the Prompt Lab schema.

Migrations run against PROMPTLAB_DATABASE_URL (or .env), the same database the
API uses, and autogenerate compares against the SQLModel tables.
"""
from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlmodel import SQLModel, create_engine

import promptlab.models  # noqa: F401
from promptlab.config import settings

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata

MIGRATION_OPTIONS = {
    "target_metadata": target_metadata,
    "compare_type": True,
    # SQLite rebuilds tables to change constraints such as ck_step_single_payload
    "render_as_batch": settings.database_url.startswith("sqlite"),
}


def run_migrations_offline() -> None:
    context.configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    # foreign keys stay off here: batch table rebuilds on SQLite need that
    engine = create_engine(settings.database_url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **MIGRATION_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
