#!/usr/bin/env python3
"""
Import a Bible translation into the books, chapters and verses tables.

Usage:
    palavraviva-import-bible data/pt_nvi.json --version nvi

The file is a JSON list of books: [{"abbrev": "gn", "name": "Gênesis",
"chapters": [["No princípio...", ...], ...]}, ...].
"""
import sys
from pathlib import Path

from ._env import base_parser, load_environment


def main() -> int:
    parser = base_parser("Import Bible JSON data")
    parser.add_argument("path", type=Path, help="JSON file with the Bible text")
    parser.add_argument("--version", default=None, help="version tag stored with each book (default: BIBLE_VERSION)")
    args = parser.parse_args()
    load_environment(args.env_file)

    from ..config import get_settings
    from ..content.bible import import_bible, load_bible_json
    from ..db.base import SessionLocal, init_db

    version = args.version or get_settings().BIBLE_VERSION
    print(f"Reading {args.path}...")
    try:
        books = load_bible_json(args.path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"Could not read Bible data: {e}", file=sys.stderr)
        return 1
    print(f"Found {len(books)} books. Importing as '{version}'...")

    init_db()
    db = SessionLocal()
    try:
        counts = import_bible(db, books, version)
    finally:
        db.close()

    print(
        f"Imported {counts['books']} books, {counts['chapters']} chapters and "
        f"{counts['verses']} verses ({counts['skipped']} books already present)."
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
