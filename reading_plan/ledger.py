"""In-memory projection of completion records into a book -> chapter -> bool map."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from .book_catalog import load_books
from .types import BookProgress, ChapterRef, CompletionRecord, CurriculumBook

Ledger = Dict[str, Dict[int, bool]]


def empty_ledger(books: Sequence[CurriculumBook]) -> Ledger:
    return {book.name: {chapter: False for chapter in range(1, book.chapters + 1)} for book in books}


def build_ledger(
    records: Iterable[CompletionRecord], books: Optional[Sequence[CurriculumBook]] = None
) -> Ledger:
    """Every curriculum chapter set to False, then True for each completed record.

    Records naming a book or chapter outside the curriculum are ignored.
    """

    books = load_books() if books is None else books
    ledger = empty_ledger(books)
    for record in records:
        if not record.completed:
            continue
        chapters = ledger.get(record.book)
        if chapters is None or record.chapter not in chapters:
            continue
        chapters[record.chapter] = True
    return ledger


def ledger_size(ledger: Ledger) -> int:
    return sum(len(chapters) for chapters in ledger.values())


def completed_count(ledger: Ledger) -> int:
    return sum(1 for chapters in ledger.values() for done in chapters.values() if done)


def is_completed(ledger: Ledger, ref: ChapterRef) -> bool:
    return bool(ledger.get(ref.book, {}).get(ref.chapter, False))


def set_chapter(ledger: Ledger, ref: ChapterRef, value: bool) -> bool:
    """Set one entry in place and return the value it replaced."""

    chapters = ledger.setdefault(ref.book, {})
    previous = bool(chapters.get(ref.chapter, False))
    chapters[ref.chapter] = bool(value)
    return previous


def copy_ledger(ledger: Ledger) -> Ledger:
    return {book: dict(chapters) for book, chapters in ledger.items()}


def book_progress(ledger: Ledger, books: Sequence[CurriculumBook]) -> List[BookProgress]:
    return [
        BookProgress(
            book=book.name,
            completed=sum(1 for done in ledger.get(book.name, {}).values() if done),
            total=book.chapters,
        )
        for book in books
    ]


def first_book_with_progress(ledger: Ledger, books: Sequence[CurriculumBook]) -> Optional[str]:
    for book in books:
        if any(ledger.get(book.name, {}).values()):
            return book.name
    return None
