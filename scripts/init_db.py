"""
Database initialization script.
Creates (or recreates) all SiteGen tables.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import load_settings
from sitegen.models.base import Base, init_db, create_tables, get_engine
from sqlalchemy import inspect

EXPECTED_TABLES = ['users', 'auth_sessions', 'conversations', 'ai_generations']


def existing_tables():
    """Names of the expected tables already present."""
    tables = inspect(get_engine()).get_table_names()
    return [t for t in EXPECTED_TABLES if t in tables]


def drop_all_tables():
    """Drop all existing tables."""
    from sitegen.models.user import User, AuthSession  # noqa: F401
    from sitegen.models.conversation import Conversation  # noqa: F401
    from sitegen.models.generation import Generation  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())
    print("✓ All tables dropped")


def verify_tables():
    """Verify that all tables were created."""
    tables = existing_tables()
    missing_tables = [t for t in EXPECTED_TABLES if t not in tables]

    if missing_tables:
        print(f"✗ Missing tables: {', '.join(missing_tables)}")
        return False

    print(f"✓ All tables created: {', '.join(tables)}")
    return True


def main():
    """Main initialization logic."""
    print("=" * 60)
    print("Database Initialization")
    print("=" * 60)

    # Load settings
    try:
        settings = load_settings()
    except Exception as e:
        print(f"✗ Configuration error: {e}")
        sys.exit(1)

    # Initialize database
    try:
        init_db()
        print(f"✓ Database engine initialized ({settings.database_url})")
    except Exception as e:
        print(f"✗ Error initializing database: {e}")
        sys.exit(1)

    if existing_tables():
        print("⚠ Tables already exist")
        response = input("Drop and recreate all tables? (y/n): ").strip().lower()

        if response != 'y':
            print("Aborted.")
            sys.exit(0)

        try:
            drop_all_tables()
        except Exception as e:
            print(f"✗ Error dropping tables: {e}")
            sys.exit(1)

    # Create tables
    try:
        create_tables()
    except Exception as e:
        print(f"✗ Error creating tables: {e}")
        sys.exit(1)

    # Verify tables
    if not verify_tables():
        sys.exit(1)

    print("=" * 60)
    print("✓ Database initialization complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
