#!/usr/bin/env python3
"""Import a canonical answer key for a stored test.

Usage:
    python scripts/import_answers.py TEST_ID answers.json

The JSON file holds a list of objects:
    [{"question_id": "...", "number": 1, "answer": "TRUE", "part_id": "6018"}]
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError

from ieltsbank.db import async_session, init_db
from ieltsbank.errors import NotFoundError, PersistenceError
from ieltsbank.models.test import AnswerImport
from ieltsbank.services.persistence import PersistenceGateway


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Import answers for a stored test")
    parser.add_argument("test_id", help="Internal id of the test")
    parser.add_argument("answers_file", help="JSON file with the answer key")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return parser.parse_args()


async def main_async(args: argparse.Namespace) -> int:
    """Main async entry point."""
    path = Path(args.answers_file)
    if not path.exists():
        print(f"Error: File not found: {path}")
        return 1

    try:
        entries = [AnswerImport(**item) for item in json.loads(path.read_text())]
    except (ValueError, TypeError, ValidationError) as e:
        print(f"Error: invalid answer file: {e}")
        return 1

    await init_db()
    gateway = PersistenceGateway(async_session)
    try:
        count = await gateway.import_answers(args.test_id, entries)
    except NotFoundError as e:
        print(f"Error: {e}")
        return 1
    except PersistenceError as e:
        print(f"Error: {e}")
        return 1

    print(f"Imported {count} answers for test {args.test_id}")
    return 0


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return asyncio.run(main_async(args))


if __name__ == "__main__":
    sys.exit(main())
