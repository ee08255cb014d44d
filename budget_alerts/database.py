# database.py
"""Database configuration and session management."""

import logging
from functools import lru_cache

from sqlalchemy import NullPool, text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import DB_SCHEMA, get_database_url

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


@lru_cache(maxsize=None)
def get_engine() -> AsyncEngine:
    """Create the async engine on first use, so importing the app needs no database."""
    logger.info("Connecting to database...")
    # NullPool: each Lambda invocation opens and closes its own connection
    return create_async_engine(get_database_url(), poolclass=NullPool)


@lru_cache(maxsize=None)
def get_sessionmaker() -> async_sessionmaker:
    return async_sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


async def init_db() -> None:
    """Create the schema (on PostgreSQL) and every table that is missing."""
    async with get_engine().begin() as connection:
        if DB_SCHEMA and connection.dialect.name == "postgresql":
            await connection.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{DB_SCHEMA}"'))
        await connection.run_sync(Base.metadata.create_all)
