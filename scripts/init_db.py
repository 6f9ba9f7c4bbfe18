#!/usr/bin/env python3
"""
Database initialization script for TaskFlow
Creates the SQLite database with the tasks and notes schemas

Usage:
    python scripts/init_db.py            # Path from config/settings.json
    python scripts/init_db.py --force    # Recreate without asking
"""

import argparse
import sqlite3
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskflow.core.config import Config
from taskflow.core.schema import init_schema


def init_database(db_path: Path, force: bool = False) -> bool:
    """Initialize the database with core schemas"""

    if db_path.exists() and not force:
        response = input(f"Database already exists at {db_path}. Overwrite? (yes/no): ")
        if response.lower() != 'yes':
            print("Aborting database initialization.")
            return False
    if db_path.exists():
        db_path.unlink()

    print(f"Creating database at {db_path}...")
    try:
        init_schema(db_path)
    except sqlite3.Error as e:
        print(f"✗ Database error: {e}")
        return False

    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;")
        tables = [row[0] for row in cursor.fetchall() if not row[0].startswith("sqlite_")]
    finally:
        conn.close()

    print("✓ Database schema created successfully!")
    print(f"✓ Database location: {db_path}")
    print(f"\n✓ Tables created: {', '.join(tables)}")
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the TaskFlow database")
    parser.add_argument("--db", type=Path, help="Database path (overrides config)")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing database")
    args = parser.parse_args()

    db_path = args.db or Config().get_database_path()

    print("=" * 60)
    print("TaskFlow - Database Initialization")
    print("=" * 60)
    print()

    success = init_database(db_path, force=args.force)

    print("\n" + "=" * 60)
    print("Database initialization complete!" if success else "Database initialization failed!")
    print("=" * 60)
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
