"""
Database module - PostgreSQL connection and query helpers.
"""
from herufi.db.postgres import get_db_session, execute_raw_sql, test_postgres_connection

__all__ = [
    "get_db_session",
    "execute_raw_sql",
    "test_postgres_connection",
]
