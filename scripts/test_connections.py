#!/usr/bin/env python3
"""
Connection Test Script

Run this to verify the database connection and schema are in place.
Usage: python scripts/test_connections.py
"""
import sys
sys.path.insert(0, '.')

from herufi.db.postgres import test_postgres_connection, execute_raw_sql
from herufi.core.config import get_settings

REQUIRED_TABLES = [
    "users", "revoked_tokens", "schools", "profiles", "students", "teachers",
    "classes", "streams", "subjects", "teacher_subjects", "terms", "examinations",
    "results", "tests", "test_results", "assessments", "student_results",
    "timetables", "batch_imports",
]


def main():
    settings = get_settings()
    print("=" * 50)
    print("HERUFI SCHOOL PORTAL - CONNECTION TEST")
    print("=" * 50)

    # Test PostgreSQL
    print("\n[1] Testing PostgreSQL...")
    if settings.database_url:
        print("    URL: (DATABASE_URL)")
    else:
        print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    if not test_postgres_connection():
        print("    ❌ PostgreSQL: FAILED")
        return
    print("    ✅ PostgreSQL: CONNECTED")

    # Check schema
    print("\n[2] Checking tables...")
    rows = execute_raw_sql(
        "SELECT table_name FROM information_schema.tables WHERE table_schema = 'public'"
    )
    existing = {r["table_name"] for r in rows}
    missing = [t for t in REQUIRED_TABLES if t not in existing]
    if missing:
        print(f"    ⚠️  Missing tables: {', '.join(missing)} (run scripts/apply_schema.py)")
    else:
        print(f"    ✅ All {len(REQUIRED_TABLES)} tables present")

    print("\n" + "=" * 50)
    print("Connection test complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
