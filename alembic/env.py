"""Alembic migration environment for the shared schema."""

from logging.config import fileConfig
import re
import sys

from sqlalchemy import engine_from_config, pool
from alembic import context

from smartpos.core.config import settings
from smartpos.core.database import PublicBase
import smartpos.models  # noqa: F401

config = context.config

database_url = settings.DATABASE_URL
if not database_url:
    print("CRITICAL: DATABASE_URL is EMPTY in settings!")
    sys.exit(255)

# Redact password for security
print(f"Using database URL (redacted): {re.sub(r':([^/@]+)@', ':****@', database_url)}")

# Force sync-compatible driver URL for Alembic
if database_url.startswith("postgresql+asyncpg://"):
    sync_database_url = database_url.replace("+asyncpg", "+psycopg")
elif database_url.startswith("postgres://"):
    sync_database_url = database_url.replace("postgres://", "postgresql+psycopg://", 1)
elif database_url.startswith("postgresql://") and "+psycopg" not in database_url:
    sync_database_url = database_url.replace("postgresql://", "postgresql+psycopg://", 1)
elif database_url.startswith("sqlite+aiosqlite://"):
    sync_database_url = database_url.replace("+aiosqlite", "", 1)
else:
    sync_database_url = database_url

config.set_main_option("sqlalchemy.url", sync_database_url.replace("%", "%%"))

# Logging config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Only the shared tables; tenant tables are created per schema at registration
target_metadata = PublicBase.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
