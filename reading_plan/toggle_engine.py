"""Single-chapter completion toggle with optimistic update and rollback."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from . import storage
from .book_catalog import load_books, require
from .errors import InvalidTarget, NotFound, StoreUnavailable
from .ledger import Ledger, copy_ledger, set_chapter
from .schedule_engine import ScheduleAdvancer, day_just_completed
from .types import ChapterRef, CompletionRecord, CurriculumBook, ToggleResult, utc_now_iso

logger = logging.getLogger(__name__)


def write_completion(user_id: str, ref: ChapterRef, completed: bool, now: str) -> CompletionRecord:
    """Update the stored record for one chapter, inserting it if there is none."""

    completed_at = now if completed else None
    existing = storage.find_record(user_id, ref.book, ref.chapter)
    if existing is not None and existing.id is not None:
        try:
            storage.update_record(existing.id, {"completed": completed, "completed_at": completed_at})
            existing.completed = completed
            existing.completed_at = completed_at
            return existing
        except NotFound:
            logger.info("Record for %s vanished before update; inserting", ref.label)
    return storage.upsert_record(
        CompletionRecord(
            user_id=user_id,
            book=ref.book,
            chapter=ref.chapter,
            completed=completed,
            completed_at=completed_at,
        )
    )


def toggle_chapter(
    user_id: str,
    ledger: Ledger,
    book: str,
    chapter: int,
    completed: bool,
    advancer: Optional[ScheduleAdvancer] = None,
    books: Optional[Sequence[CurriculumBook]] = None,
    now: Optional[str] = None,
) -> ToggleResult:
    """Apply the new value to ``ledger`` right away, then save it.

    If saving fails the ledger entry is put back to its previous value and a
    failed result is returned. ``day_just_completed`` is set only when this
    toggle finished today's assignment.
    """

    books = load_books() if books is None else books
    ref = ChapterRef(book, int(chapter))
    try:
        require(ref, books)
    except InvalidTarget as exc:
        return ToggleResult(success=False, error=str(exc))

    before = copy_ledger(ledger)
    previous = set_chapter(ledger, ref, completed)

    try:
        write_completion(user_id, ref, completed, now or utc_now_iso())
    except StoreUnavailable as exc:
        set_chapter(ledger, ref, previous)
        logger.warning("Could not save %s for %s; reverted: %s", ref.label, user_id, exc)
        return ToggleResult(success=False, error=str(exc))

    just_completed = advancer is not None and day_just_completed(advancer, before, ledger)
    return ToggleResult(success=True, day_just_completed=just_completed)
