# recruitbot/db/session.py
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from recruitbot.core.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    # echo=True,
    future=True,
    pool_pre_ping=True,
    # pgbouncer in transaction mode does not support prepared statements
    connect_args={
        "prepared_statement_cache_size": 0,
        "statement_cache_size": 0
    }
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)
