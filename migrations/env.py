import os
import sys
from logging.config import fileConfig

from sqlalchemy import create_engine
from alembic import context
from dotenv import load_dotenv

# Project root on the path so recruitbot.* imports resolve
sys.path.insert(0, os.path.realpath(os.path.join(os.path.dirname(__file__), '..')))

# Variables from .env
load_dotenv()

# Model metadata
from recruitbot.db.models import Base

# Alembic configuration object
config = context.config

# Logging setup
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Metadata for autogenerate (alembic revision --autogenerate)
target_metadata = Base.metadata

def get_url():
    """
    Database URL from .env with asyncpg swapped for psycopg2,
    since Alembic runs synchronously.
    """
    url = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")
    if url and "asyncpg" in url:
        return url.replace("asyncpg", "psycopg2")
    return url

def run_migrations_offline() -> None:
    """Offline mode: emit the SQL script."""
    url = get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online() -> None:
    """Online mode: apply to the live database."""

    # Plain synchronous engine for migrations
    connectable = create_engine(get_url())

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
