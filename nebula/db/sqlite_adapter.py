"""
SQLite Database Adapter

This module implements the DatabaseAdapter interface for SQLite.
All SQLite-specific configuration and behavior is encapsulated here.

Key characteristics:
- File-based (single .db file)
- No server required
- Single writer at a time (file locking); concurrent writers queue on the
  busy timeout instead of failing
- Supports INSERT ... ON CONFLICT DO UPDATE (SQLite >= 3.24)
"""

from typing import Any

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool
from sqlalchemy.sql import Executable

from nebula.db.interface import DatabaseAdapter
from nebula.db.models import VisitorCounter


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.

    This adapter handles all SQLite-specific configuration and operations.
    """

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create SQLite async engine with appropriate configuration.

        SQLite-specific configuration:
        - NullPool: one connection per session (file-based, no pooling needed)
        - check_same_thread=False: Required for async SQLite operations
        - timeout: how long a writer waits for the file lock

        Args:
            database_url: SQLite connection string (sqlite+aiosqlite:///...)
            **kwargs: Additional engine options (merged with SQLite defaults)

        Returns:
            Configured AsyncEngine for SQLite
        """
        connect_args = self.get_connect_args()

        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        return create_async_engine(
            database_url,
            poolclass=self.get_pool_class(),
            connect_args=connect_args,
            **engine_kwargs
        )

    def get_pool_class(self) -> type[NullPool]:
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False,
            "timeout": self.timeout,
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False  # Set to True only for SQL debugging in development
        }

    def counter_upsert_statement(self, counter_id: str) -> Executable:
        """
        Build SQLite's single-statement "insert or increment".

        Generates:
            INSERT INTO visitor_counters (id, count) VALUES (:id, 1)
            ON CONFLICT (id) DO UPDATE SET count = visitor_counters.count + 1
        """
        statement = sqlite_insert(VisitorCounter).values(id=counter_id, count=1)
        return statement.on_conflict_do_update(
            index_elements=[VisitorCounter.id],
            set_={"count": VisitorCounter.count + 1},
        )

    def get_dialect_name(self) -> str:
        return "sqlite"


def get_database_adapter(timeout: float = 30.0) -> DatabaseAdapter:
    """
    Factory function to get the database adapter.

    Returns SQLiteAdapter by default. To switch to PostgreSQL, create a
    PostgreSQLAdapter class and update this function.

    Args:
        timeout: Seconds a writer waits on the SQLite file lock

    Returns:
        DatabaseAdapter instance
    """
    return SQLiteAdapter(timeout=timeout)
