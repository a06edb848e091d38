"""
Database cleanup script.
Deletes generations whose AI response is empty; current versions are kept.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import load_settings
from sitegen.models.base import init_db, create_tables, get_db
from sitegen.services.generation_service import GenerationService


def main():
    """Main cleanup logic."""
    parser = argparse.ArgumentParser(description="Remove generations with an empty AI response")
    parser.add_argument("--dry-run", action="store_true", help="Only report what would be deleted")
    args = parser.parse_args()

    print("=" * 60)
    print("Empty Generation Cleanup")
    print("=" * 60)

    try:
        settings = load_settings()
    except Exception as e:
        print(f"✗ Configuration error: {e}")
        sys.exit(1)

    print(f"Database: {settings.database_url}")
    create_tables(init_db())

    with get_db() as db:
        service = GenerationService(db)
        empty = service.find_empty_generations()
        print(f"Found {len(empty)} empty generation(s)")

        for generation in empty[:5]:
            print(f"  - {generation.id} (conversation {generation.conversation_id}, v{generation.version})")

        if args.dry_run:
            print("Dry run, nothing deleted.")
            return

        deleted = service.purge_empty_generations()

    print("=" * 60)
    print(f"✓ Deleted {deleted} empty generation(s)")
    print("=" * 60)


if __name__ == "__main__":
    main()
