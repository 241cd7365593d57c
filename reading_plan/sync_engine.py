"""Bulk reconciliation of a reader's records against a target position."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from . import storage
from .book_catalog import book_by_name, flatten, load_books, require
from .config import insert_batch_size, update_batch_size
from .errors import InvalidTarget, StoreUnavailable
from .types import ChapterRef, CompletionRecord, CurriculumBook, SyncResult, utc_now_iso

logger = logging.getLogger(__name__)

Plan = Tuple[List[CompletionRecord], List[CompletionRecord]]


def _existing_by_ref(records: Iterable[CompletionRecord]) -> Dict[ChapterRef, CompletionRecord]:
    return {record.ref: record for record in records}


def _reconcile(
    user_id: str,
    desired: Iterable[Tuple[ChapterRef, bool]],
    existing: Dict[ChapterRef, CompletionRecord],
    now: str,
) -> Plan:
    """Minimal writes that bring ``existing`` to the ``desired`` states."""

    inserts: List[CompletionRecord] = []
    updates: List[CompletionRecord] = []
    for ref, mark in desired:
        record = existing.get(ref)
        if record is None:
            if mark:
                inserts.append(
                    CompletionRecord(
                        user_id=user_id,
                        book=ref.book,
                        chapter=ref.chapter,
                        completed=True,
                        completed_at=now,
                    )
                )
            continue
        if record.completed != mark:
            updates.append(
                CompletionRecord(
                    id=record.id,
                    user_id=user_id,
                    book=ref.book,
                    chapter=ref.chapter,
                    completed=mark,
                    completed_at=now if mark else None,
                )
            )
    return inserts, updates


def plan_advance_sync(
    user_id: str,
    existing_records: Iterable[CompletionRecord],
    target: ChapterRef,
    books: Optional[Sequence[CurriculumBook]] = None,
    now: Optional[str] = None,
) -> Plan:
    """Inserts and updates that make exactly the chapters up to ``target`` read.

    The target itself is marked read; every chapter strictly after it is
    marked unread. Raises :class:`InvalidTarget` before planning anything if
    the target is not in the curriculum.
    """

    books = load_books() if books is None else books
    require(target, books)
    now = now or utc_now_iso()

    desired: List[Tuple[ChapterRef, bool]] = []
    passed_target = False
    for ref in flatten(books):
        desired.append((ref, not passed_target))
        if ref == target:
            passed_target = True
    return _reconcile(user_id, desired, _existing_by_ref(existing_records), now)


def _require_book(book: str, chapter_count: int, books: Sequence[CurriculumBook]) -> None:
    entry = book_by_name(book, books)
    if entry is None or not 1 <= int(chapter_count) <= entry.chapters:
        raise InvalidTarget(book, chapter_count)


def plan_book_mark(
    user_id: str,
    existing_records: Iterable[CompletionRecord],
    book: str,
    chapter_count: int,
    completed: bool,
    books: Optional[Sequence[CurriculumBook]] = None,
    now: Optional[str] = None,
) -> Plan:
    """Inserts and updates that set chapters ``1..chapter_count`` of one book."""

    books = load_books() if books is None else books
    _require_book(book, chapter_count, books)
    now = now or utc_now_iso()
    desired = [(ChapterRef(book, chapter), completed) for chapter in range(1, int(chapter_count) + 1)]
    return _reconcile(user_id, desired, _existing_by_ref(existing_records), now)


def _batches(items: List[CompletionRecord], size: int) -> List[List[CompletionRecord]]:
    return [items[idx:idx + size] for idx in range(0, len(items), size)]


def apply_plan(plan: Plan) -> SyncResult:
    """Issue every update and insert batch; any failure fails the whole result.

    All batches are attempted even after one fails. Rows that vanished before
    their update are inserted instead.
    """

    inserts, updates = plan
    inserted = updated = failed = 0
    errors: List[str] = []
    resurrect: List[CompletionRecord] = []

    for batch in _batches(updates, update_batch_size()):
        try:
            missing = storage.batch_update(batch)
        except StoreUnavailable as exc:
            failed += 1
            errors.append(str(exc))
            continue
        updated += len(batch) - len(missing)
        for record in missing:
            logger.info("Record for %s %s vanished; inserting instead", record.book, record.chapter)
            if record.completed:
                resurrect.append(record)

    for batch in _batches(inserts + resurrect, insert_batch_size()):
        try:
            inserted += storage.batch_upsert(batch)
        except StoreUnavailable as exc:
            failed += 1
            errors.append(str(exc))

    if failed:
        logger.warning("Sync finished with %d failed batch(es): %s", failed, "; ".join(errors))
        return SyncResult(
            success=False,
            inserted=inserted,
            updated=updated,
            failed_batches=failed,
            error=f"{failed} batch(es) failed to save",
        )
    return SyncResult(success=True, inserted=inserted, updated=updated)


def advance_sync(
    user_id: str,
    book: str,
    chapter: int,
    books: Optional[Sequence[CurriculumBook]] = None,
    now: Optional[str] = None,
) -> SyncResult:
    """Mark every chapter up to and including ``book chapter`` read, the rest unread."""

    books = load_books() if books is None else books
    target = ChapterRef(book, int(chapter))
    try:
        require(target, books)
        existing = storage.fetch_records(user_id)
        plan = plan_advance_sync(user_id, existing, target, books, now)
    except InvalidTarget as exc:
        logger.warning("Rejected advance-sync for %s: %s", user_id, exc)
        return SyncResult(success=False, error=str(exc))
    except StoreUnavailable as exc:
        return SyncResult(success=False, error=str(exc))

    logger.info(
        "Advance-sync for %s to %s: %d insert(s), %d update(s)",
        user_id, target.label, len(plan[0]), len(plan[1]),
    )
    return apply_plan(plan)


def bulk_mark_book(
    user_id: str,
    book: str,
    chapter_count: int,
    completed: bool,
    books: Optional[Sequence[CurriculumBook]] = None,
    now: Optional[str] = None,
) -> SyncResult:
    """Set chapters ``1..chapter_count`` of one book to ``completed``."""

    books = load_books() if books is None else books
    try:
        _require_book(book, chapter_count, books)
        existing = [record for record in storage.fetch_records(user_id) if record.book == book]
        plan = plan_book_mark(user_id, existing, book, chapter_count, completed, books, now)
    except InvalidTarget as exc:
        logger.warning("Rejected book mark for %s: %s", user_id, exc)
        return SyncResult(success=False, error=str(exc))
    except StoreUnavailable as exc:
        return SyncResult(success=False, error=str(exc))
    return apply_plan(plan)
