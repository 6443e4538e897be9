"""
Database Session Management

This module handles async database connections using SQLAlchemy's async engine.
Uses a database abstraction layer to support different database backends.

Key Features:
- Database abstraction: Easy to switch between SQLite, PostgreSQL, etc.
- Async session management: Proper async context management
"""

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from nebula.core.setting import settings
from nebula.db.sqlite_adapter import get_database_adapter

# Get the database adapter (currently SQLite by default)
db_adapter = get_database_adapter(timeout=settings.DATABASE_TIMEOUT_SECONDS)

# The adapter handles all database-specific configuration
engine = db_adapter.create_engine(
    settings.DATABASE_URL
)


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    """
    Create an async session factory bound to an engine.

    Args:
        bind: Engine the sessions connect through

    Returns:
        Session factory producing SQLModel async sessions
    """
    return async_sessionmaker(
        bind,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,  # Prevents SQLAlchemy from expiring objects after commit
        autoflush=False,
    )


async_session_maker = create_session_maker(engine)


async def create_tables(bind: AsyncEngine = engine) -> None:
    """
    Create any missing tables for the registered models.

    Used on startup in development (AUTO_CREATE_TABLES) and by tests;
    production schemas are managed with Alembic.
    """
    # Import models so they are registered on SQLModel.metadata
    from nebula.db import models  # noqa: F401

    async with bind.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)

