from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from settings import settings


config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _database_url() -> str:
    # the owner DSN: DATABASE_PUBLIC_URL cannot create roles, triggers or policies
    url = (config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return url


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=None,
        version_table_schema="public",
        **kwargs,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    _configure(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def run_migrations_online() -> None:
    engine = create_engine(_database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(connection=connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
