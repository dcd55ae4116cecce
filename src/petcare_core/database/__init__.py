"""
Database connection, session management, and migration utilities.

This module provides async SQLAlchemy engine configuration, session management
and migration utilities for the PetCare backend.
"""

from .connection import (
    check_connection,
    close_engine,
    create_engine,
    get_database_url,
    normalize_database_url,
    wait_for_database,
)
from .migrations import MigrationManager, get_current_revision, run_migrations_async
from .session import (
    SessionManager,
    get_session,
    get_session_manager,
    get_transaction,
    initialize_session_manager,
)
from .types import JSONType

__all__ = [
    # Connection utilities
    "create_engine",
    "get_database_url",
    "normalize_database_url",
    "check_connection",
    "close_engine",
    "wait_for_database",
    # Session management
    "SessionManager",
    "initialize_session_manager",
    "get_session_manager",
    "get_session",
    "get_transaction",
    # Column types
    "JSONType",
    # Migration utilities
    "MigrationManager",
    "get_current_revision",
    "run_migrations_async",
]
