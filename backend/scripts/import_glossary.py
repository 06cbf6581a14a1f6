#!/usr/bin/env python3
"""
Seed the glossary database from JSON files.

Reads categories and terms (camelCase or snake_case records, emoji or
word difficulties) and upserts them. Safe to run repeatedly.

Usage:
    cd backend
    python scripts/import_glossary.py [--categories data/categories.json] [--terms data/terms.json]
"""
import argparse
import asyncio
import json
from pathlib import Path
from loguru import logger
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import settings
from database.connection import get_db, init_db, close_db
from glossary.transfer import import_json


def load_json(path: Path):
    """Read a JSON file, returning an empty list when it does not exist"""
    if not path.exists():
        logger.warning(f"File not found, skipping: {path}")
        return []
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


async def main(categories_path: Path, terms_path: Path) -> int:
    """Import both files; returns a process exit code"""
    logger.info("Starting glossary import...")

    categories = load_json(categories_path)
    terms = load_json(terms_path)

    await init_db()
    try:
        async with get_db() as session:
            result = await import_json(session, {"categories": categories, "terms": terms})
    finally:
        await close_db()

    logger.info(f"""
Import completed:
  - Categories: {result.categories}
  - Terms: {result.terms}
  - Skipped: {result.skipped}
""")
    for error in result.errors:
        logger.warning(error)

    return 1 if result.skipped else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Import glossary data into the database")
    parser.add_argument("--categories", type=Path, default=settings.SEED_DIR / "categories.json")
    parser.add_argument("--terms", type=Path, default=settings.SEED_DIR / "terms.json")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.categories, args.terms)))
