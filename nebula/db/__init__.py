"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for database implementations
- SQLiteAdapter: SQLite-specific implementation (default)
- Session management: Database session creation and management

To add a new database backend:
1. Create a new adapter class inheriting from DatabaseAdapter
2. Implement all abstract methods, including the counter upsert
3. Update get_database_adapter() in sqlite_adapter.py to return the new adapter
"""

from nebula.db.interface import DatabaseAdapter
from nebula.db.session import (
    async_session_maker,
    create_session_maker,
    create_tables,
    db_adapter,
    engine,
)

__all__ = [
    "DatabaseAdapter",
    "async_session_maker",
    "create_session_maker",
    "create_tables",
    "db_adapter",
    "engine",
]
