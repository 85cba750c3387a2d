"""Global database manager for the API process.

Supabase connection modes:
  - Session Pooler  (port 5432): persistent servers, prepared statements allowed
  - Transaction Pooler (port 6543): short-lived connections, no prepared statements
"""

import logging

from shared.database import DatabaseManager, PoolConfig

logger = logging.getLogger(__name__)

_db_manager: DatabaseManager | None = None


def get_database_manager() -> DatabaseManager:
    """Get the global database manager instance"""
    if _db_manager is None:
        raise RuntimeError("Database manager not initialized")
    return _db_manager


def init_database_manager(database_url: str) -> DatabaseManager:
    """Initialize the global database manager"""
    global _db_manager
    _db_manager = DatabaseManager(database_url, PoolConfig.for_service("api"))
    return _db_manager
