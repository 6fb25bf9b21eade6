"""Database module for the shortlinks service."""
from shortlinks.db.base import get_engine, get_session, create_tables, dispose_engine
from shortlinks.db.session import get_db, db_transaction, SessionManager
from shortlinks.db.resilience import initialize_database_connection

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "dispose_engine",
    "get_db",
    "db_transaction",
    "SessionManager",
    "initialize_database_connection",
]
