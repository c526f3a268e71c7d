#!/usr/bin/env python3
"""
Schema Script

Creates every table of scripts/schema.sql (idempotent: CREATE ... IF NOT EXISTS)
and removes revoked tokens that have expired anyway.

Run: python scripts/apply_schema.py
"""
import sys
from pathlib import Path
sys.path.insert(0, '.')

from sqlalchemy import text

from herufi.db.postgres import get_db_session

SCHEMA_FILE = Path(__file__).with_name("schema.sql")


def apply_schema():
    """Execute schema.sql in one transaction."""
    print("\n[1] Applying schema...")
    schema_sql = SCHEMA_FILE.read_text()

    with get_db_session() as db:
        db.execute(text(schema_sql))

    print("    ✅ Schema applied")


def purge_expired_tokens():
    print("\n[2] Purging expired revoked tokens...")
    with get_db_session() as db:
        result = db.execute(text("DELETE FROM revoked_tokens WHERE expires_at < NOW()"))
    print(f"    ✅ Removed {result.rowcount} rows")


if __name__ == "__main__":
    apply_schema()
    purge_expired_tokens()
