"""
Database module initialization.
Exports database components for use throughout the application.
"""

from clutch.database.base import Base, TimestampMixin, utcnow
from clutch.database.retry import run_in_transaction
from clutch.database.session import (
    check_db_connection,
    close_db,
    get_db_session,
    get_engine,
    get_session_factory,
    init_db,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "utcnow",
    # Connection management
    "init_db",
    "close_db",
    "get_engine",
    "get_session_factory",
    "get_db_session",
    "check_db_connection",
    # Unit of work
    "run_in_transaction",
]
