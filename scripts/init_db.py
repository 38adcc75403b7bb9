#!/usr/bin/env python3
"""
One-shot database initialisation script.

Creates the ``users`` table.  Safe to run multiple times;
``create_all`` is a no-op for tables that already exist.

Usage:
    python scripts/init_db.py
"""

from sqlalchemy import inspect
from sqlalchemy.engine import make_url

from sessionauth.config import get_settings
from sessionauth.db.connection import Database


def main() -> None:
    settings = get_settings()
    print(f"Database URL: {make_url(settings.DATABASE_URL).render_as_string(hide_password=True)}")

    database = Database(settings.DATABASE_URL)

    print("Creating tables …")
    database.create_all()

    inspector = inspect(database.engine)
    tables = inspector.get_table_names()
    print(f"Tables present ({len(tables)}):")
    for t in sorted(tables):
        print(f"  • {t}")

    database.dispose()
    print("\nDatabase initialisation complete.")


if __name__ == "__main__":
    main()
