"""Bible text lookup and import.

References use the lower-case abbreviations of the imported NVI data set,
e.g. ``jo 3:16`` or ``1co 13:4``.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..models.sql_models import Book, Chapter, Verse

logger = logging.getLogger(__name__)

VERSE_REF_RE = re.compile(r"^(.*)\s+(\d+):(\d+)$")

OLD_TESTAMENT = (
    "gn", "ex", "lv", "nm", "dt", "js", "jz", "rt", "1sm", "2sm", "1rs", "2rs",
    "1cr", "2cr", "ed", "ne", "et", "job", "sl", "pv", "ec", "ct", "is", "jr",
    "lm", "ez", "dn", "os", "jl", "am", "ob", "jn", "mq", "na", "hc", "sf",
    "ag", "zc", "ml",
)

NEW_TESTAMENT = (
    "mt", "mc", "lc", "jo", "atos", "rm", "1co", "2co", "gl", "ef", "fp", "cl",
    "1ts", "2ts", "1tm", "2tm", "tt", "fm", "hb", "tg", "1pe", "2pe", "1jo",
    "2jo", "3jo", "jd", "ap",
)


def parse_verse_ref(verse_ref: str) -> Optional[Tuple[str, int, int]]:
    """Split a reference into (book abbreviation, chapter, verse).

    Returns None when the reference is empty or malformed.
    """
    if not verse_ref:
        return None

    match = VERSE_REF_RE.match(verse_ref.strip().lower())
    if not match:
        logger.warning("Invalid verse reference format: %s", verse_ref)
        return None

    book_abbrev, chapter_str, verse_str = match.groups()
    chapter_num = int(chapter_str)
    verse_num = int(verse_str)
    if chapter_num < 1 or verse_num < 1:
        logger.warning("Invalid chapter/verse number in reference: %s", verse_ref)
        return None

    return book_abbrev.strip(), chapter_num, verse_num


def testament_for(abbrev: str) -> str:
    return "VT" if abbrev in OLD_TESTAMENT else "NT"


def get_verse_text(db: Session, verse_ref: str, version: Optional[str] = None) -> Optional[str]:
    """Look up the text of a single verse in the imported Bible."""
    parsed = parse_verse_ref(verse_ref)
    if parsed is None:
        return None

    book_abbrev, chapter_num, verse_num = parsed
    version = version or get_settings().BIBLE_VERSION
    try:
        text = (
            db.query(Verse.text)
            .join(Chapter, Verse.chapter_id == Chapter.id)
            .join(Book, Chapter.book_id == Book.id)
            .filter(
                Book.abbreviation == book_abbrev,
                Book.version == version,
                Chapter.chapter_number == chapter_num,
                Verse.verse_number == verse_num,
            )
            .limit(1)
            .scalar()
        )
    except SQLAlchemyError:
        logger.error("Database error fetching verse %s", verse_ref, exc_info=True)
        return None

    if text is None:
        logger.warning(
            "Verse not found for %s (book=%s chapter=%s verse=%s version=%s)",
            verse_ref, book_abbrev, chapter_num, verse_num, version,
        )
    return text


def load_bible_json(raw: str) -> List[Dict[str, Any]]:
    """Parse the ``[{abbrev, name, chapters: [[verse, ...], ...]}]`` format.

    A leading byte order mark is tolerated.
    """
    if raw.startswith("\ufeff"):
        raw = raw[1:]
    data = json.loads(raw.strip())
    if not isinstance(data, list):
        raise ValueError("Bible JSON must be a list of books")
    for book in data:
        if not isinstance(book, dict) or not {"abbrev", "name", "chapters"} <= book.keys():
            raise ValueError("Each book needs 'abbrev', 'name' and 'chapters'")
    return data


def import_bible(db: Session, books: List[Dict[str, Any]], version: str) -> Dict[str, int]:
    """Insert books, chapters and verses for one version.

    Books already present for the version are skipped, so a partial import can
    be resumed.

    Returns:
        Dict: counts of imported books, chapters and verses
    """
    counts = {"books": 0, "chapters": 0, "verses": 0, "skipped": 0}
    for book_data in books:
        abbrev = book_data["abbrev"].strip().lower()
        exists = (
            db.query(Book.id)
            .filter(Book.abbreviation == abbrev, Book.version == version)
            .first()
        )
        if exists:
            logger.info("Skipping %s (%s): already imported", book_data["name"], abbrev)
            counts["skipped"] += 1
            continue

        testament = testament_for(abbrev)
        logger.info("Importing %s (%s) - %s", book_data["name"], abbrev, testament)
        book = Book(name=book_data["name"], abbreviation=abbrev, testament=testament, version=version)
        for chapter_number, chapter_verses in enumerate(book_data["chapters"], start=1):
            chapter = Chapter(chapter_number=chapter_number)
            chapter.verses = [
                Verse(verse_number=verse_number, text=text)
                for verse_number, text in enumerate(chapter_verses, start=1)
            ]
            book.chapters.append(chapter)
            counts["chapters"] += 1
            counts["verses"] += len(chapter_verses)

        try:
            db.add(book)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error("Failed to import %s", abbrev, exc_info=True)
            raise
        counts["books"] += 1

    return counts
