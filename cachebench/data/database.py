"""
Database connection and session management.
Uses SQLAlchemy's asyncio extension (asyncpg for Postgres, aiosqlite for SQLite).
"""
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

# Base class for all our database models (must be defined before engine)
Base = declarative_base()


def create_engine_for(database_url: str) -> AsyncEngine:
    """
    Create an async engine for ``database_url``.

    SQLite URLs get NullPool so each session opens its own connection; the
    Postgres pooler (e.g. Supabase) manages its own connections, so the same
    holds there.
    """
    return create_async_engine(database_url, pool_pre_ping=True, poolclass=NullPool)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
