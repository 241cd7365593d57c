"""The ordered book list that defines the canonical reading sequence."""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional, Sequence

from .config import curriculum_path
from .errors import InvalidTarget
from .types import ChapterRef, CurriculumBook

logger = logging.getLogger(__name__)

OLD_TESTAMENT = "Old Testament"
NEW_TESTAMENT = "New Testament"

RAW_BOOKS = [
    ("Genesis", 50), ("Exodus", 40), ("Leviticus", 27), ("Numbers", 36),
    ("Deuteronomy", 34), ("Joshua", 24), ("Judges", 21), ("Ruth", 4),
    ("1 Samuel", 31), ("2 Samuel", 24), ("1 Kings", 22), ("2 Kings", 25),
    ("1 Chronicles", 29), ("2 Chronicles", 36), ("Ezra", 10), ("Nehemiah", 13),
    ("Esther", 10), ("Job", 42), ("Psalms", 150), ("Proverbs", 31),
    ("Ecclesiastes", 12), ("Song of Solomon", 8), ("Isaiah", 66), ("Jeremiah", 52),
    ("Lamentations", 5), ("Ezekiel", 48), ("Daniel", 12), ("Hosea", 14),
    ("Joel", 3), ("Amos", 9), ("Obadiah", 1), ("Jonah", 4),
    ("Micah", 7), ("Nahum", 3), ("Habakkuk", 3), ("Zephaniah", 3),
    ("Haggai", 2), ("Zechariah", 14), ("Malachi", 4),
    ("Matthew", 28), ("Mark", 16), ("Luke", 24), ("John", 21),
    ("Acts", 28), ("Romans", 16), ("1 Corinthians", 16), ("2 Corinthians", 13),
    ("Galatians", 6), ("Ephesians", 6), ("Philippians", 4), ("Colossians", 4),
    ("1 Thessalonians", 5), ("2 Thessalonians", 3), ("1 Timothy", 6), ("2 Timothy", 4),
    ("Titus", 3), ("Philemon", 1), ("Hebrews", 13), ("James", 5),
    ("1 Peter", 5), ("2 Peter", 3), ("1 John", 5), ("2 John", 1),
    ("3 John", 1), ("Jude", 1), ("Revelation", 22),
]

_OLD_TESTAMENT_BOOKS = 39


def _default_books() -> List[CurriculumBook]:
    return [
        CurriculumBook(
            name=name,
            chapters=chapters,
            testament=OLD_TESTAMENT if idx < _OLD_TESTAMENT_BOOKS else NEW_TESTAMENT,
        )
        for idx, (name, chapters) in enumerate(RAW_BOOKS)
    ]


def _validate(books: List[CurriculumBook]) -> List[CurriculumBook]:
    names = [book.name for book in books]
    if len(set(names)) != len(names):
        raise ValueError("Duplicate book names in curriculum")
    return books


def load_books() -> List[CurriculumBook]:
    """Return the curriculum, preferring a valid JSON override on disk."""

    path = curriculum_path()
    if path.exists():
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            books = _validate([CurriculumBook.from_dict(item) for item in raw])
            if books:
                return books
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring invalid curriculum file %s: %s", path, exc)
    return _default_books()


def flatten(books: Sequence[CurriculumBook]) -> List[ChapterRef]:
    """Every chapter in canonical reading order."""

    return [
        ChapterRef(book.name, chapter)
        for book in books
        for chapter in range(1, book.chapters + 1)
    ]


def total_chapters(books: Sequence[CurriculumBook]) -> int:
    return sum(book.chapters for book in books)


def book_by_name(name: str, books: Sequence[CurriculumBook]) -> Optional[CurriculumBook]:
    for book in books:
        if book.name == name:
            return book
    return None


def contains(ref: ChapterRef, books: Sequence[CurriculumBook]) -> bool:
    book = book_by_name(ref.book, books)
    return book is not None and 1 <= ref.chapter <= book.chapters


def require(ref: ChapterRef, books: Sequence[CurriculumBook]) -> ChapterRef:
    if not contains(ref, books):
        raise InvalidTarget(ref.book, ref.chapter)
    return ref


def index_of(ref: ChapterRef, books: Sequence[CurriculumBook]) -> int:
    """Position of a chapter in the flattened order; InvalidTarget if unknown."""

    offset = 0
    for book in books:
        if book.name == ref.book:
            if 1 <= ref.chapter <= book.chapters:
                return offset + ref.chapter - 1
            break
        offset += book.chapters
    raise InvalidTarget(ref.book, ref.chapter)


def testament_groups(books: Sequence[CurriculumBook]) -> Dict[str, List[CurriculumBook]]:
    groups: Dict[str, List[CurriculumBook]] = {OLD_TESTAMENT: [], NEW_TESTAMENT: []}
    for book in books:
        groups.setdefault(book.testament or OLD_TESTAMENT, []).append(book)
    return groups


def search_books(query: str, books: Sequence[CurriculumBook]) -> List[CurriculumBook]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(books)
    return [book for book in books if needle in book.name.lower()]
