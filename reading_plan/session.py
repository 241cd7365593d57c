"""Entry points used by the UI: one reader's ledger, schedule and stats."""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

from . import storage, sync_engine, toggle_engine
from .book_catalog import load_books
from .errors import StoreUnavailable
from .ledger import Ledger, build_ledger
from .schedule_engine import ScheduleAdvancer
from .stats_engine import build_stats
from .types import ChapterRef, CurriculumBook, StatsSnapshot, SyncResult, ToggleResult

logger = logging.getLogger(__name__)

_advancers: Dict[str, ScheduleAdvancer] = {}


def get_progress_ledger(user_id: str, books: Optional[Sequence[CurriculumBook]] = None) -> Ledger:
    return build_ledger(storage.fetch_records(user_id, completed_only=True), books)


def get_stats(
    user_id: str,
    today: Optional[date] = None,
    books: Optional[Sequence[CurriculumBook]] = None,
) -> StatsSnapshot:
    records = storage.fetch_records(user_id, completed_only=True)
    plan = storage.load_reading_plan(user_id, today=today)
    return build_stats(records, plan, today=today, books=books)


def _plan_chapters_per_day(user_id: str) -> Optional[int]:
    try:
        return storage.load_reading_plan(user_id).chapters_per_day
    except StoreUnavailable as exc:
        logger.warning("Could not load reading plan for %s: %s", user_id, exc)
        return None


def session_advancer(
    user_id: str, ledger: Ledger, books: Optional[Sequence[CurriculumBook]] = None
) -> ScheduleAdvancer:
    """The schedule pointer kept for ``user_id`` in this process.

    It is started from ``ledger`` on first use and left alone afterwards.
    """

    advancer = _advancers.get(user_id)
    if advancer is None:
        advancer = ScheduleAdvancer(books, _plan_chapters_per_day(user_id))
        advancer.initialize(ledger)
        _advancers[user_id] = advancer
    return advancer


def forget_session(user_id: str) -> None:
    _advancers.pop(user_id, None)


def toggle_chapter(
    user_id: str,
    book: str,
    chapter: int,
    completed: bool,
    ledger: Optional[Ledger] = None,
    advancer: Optional[ScheduleAdvancer] = None,
) -> ToggleResult:
    """Toggle one chapter; without a ledger, the current one is fetched first.

    Without an advancer the user's :func:`session_advancer` is used, so
    ``day_just_completed`` still reports finishing today's reading.
    """

    books = load_books()
    if ledger is None:
        try:
            ledger = get_progress_ledger(user_id, books)
        except StoreUnavailable as exc:
            return ToggleResult(success=False, error=str(exc))
    if advancer is None:
        advancer = session_advancer(user_id, ledger, books)
    return toggle_engine.toggle_chapter(
        user_id, ledger, book, chapter, completed, advancer=advancer, books=books
    )


def bulk_mark_book(user_id: str, book: str, chapter_count: int, completed: bool) -> SyncResult:
    return sync_engine.bulk_mark_book(user_id, book, chapter_count, completed)


def advance_sync(user_id: str, target_book: str, target_chapter: int) -> SyncResult:
    return sync_engine.advance_sync(user_id, target_book, target_chapter)


def get_todays_assignment(ledger: Ledger, advancer: ScheduleAdvancer) -> List[ChapterRef]:
    advancer.initialize(ledger)
    return advancer.todays_assignment()


def get_read_ahead(ledger: Ledger, advancer: ScheduleAdvancer) -> Optional[ChapterRef]:
    advancer.initialize(ledger)
    return advancer.read_ahead(ledger)


class ReadingSession:
    """One reader's session: the ledger it reads and the schedule pointer it owns.

    The ledger is rebuilt from the store on every :meth:`refresh`; the
    schedule pointer is set from the first ledger that loads and kept for the
    rest of the session.
    """

    def __init__(
        self,
        user_id: str,
        books: Optional[Sequence[CurriculumBook]] = None,
        chapters_per_day: Optional[int] = None,
    ):
        self.user_id = user_id
        self.books = list(load_books() if books is None else books)
        self.advancer = ScheduleAdvancer(self.books, chapters_per_day)
        # Without an explicit size the window follows the stored plan.
        self.window_from_plan = chapters_per_day is None
        self.ledger: Ledger = build_ledger([], self.books)
        self.loaded = False
        self.busy = False

    def refresh(self) -> bool:
        """Reload the ledger; on store failure keep the last good copy."""

        try:
            records = storage.fetch_records(self.user_id, completed_only=True)
            if self.window_from_plan and not self.advancer.initialized:
                self.advancer.chapters_per_day = storage.load_reading_plan(self.user_id).chapters_per_day
        except StoreUnavailable as exc:
            logger.warning("Could not refresh ledger for %s: %s", self.user_id, exc)
            return False
        self.ledger = build_ledger(records, self.books)
        self.loaded = True
        self.advancer.initialize(self.ledger)
        return True

    def reset_schedule(self) -> Optional[int]:
        """Recompute today's window from the current ledger."""

        return self.advancer.initialize(self.ledger, force=True)

    def todays_assignment(self) -> List[ChapterRef]:
        return self.advancer.todays_assignment()

    def read_ahead(self) -> Optional[ChapterRef]:
        return self.advancer.read_ahead(self.ledger)

    def read_ahead_chapters(self) -> List[ChapterRef]:
        return self.advancer.read_ahead_chapters(self.ledger)

    def assignment_complete(self) -> bool:
        return self.advancer.all_assignment_complete(self.ledger)

    def toggle(self, book: str, chapter: int, completed: bool) -> ToggleResult:
        if self.busy:
            return ToggleResult(success=False, error="Another update is still in progress")
        self.busy = True
        try:
            return toggle_engine.toggle_chapter(
                self.user_id, self.ledger, book, chapter, completed,
                advancer=self.advancer, books=self.books,
            )
        finally:
            self.busy = False

    def _bulk(self, run) -> SyncResult:
        if self.busy:
            return SyncResult(success=False, error="Another update is still in progress")
        self.busy = True
        try:
            result = run()
        finally:
            self.busy = False
        # Rebuild even after a failed sync: some batches may have landed.
        if result.writes or not result.success:
            self.refresh()
        return result

    def advance_sync(self, book: str, chapter: int) -> SyncResult:
        return self._bulk(lambda: sync_engine.advance_sync(self.user_id, book, chapter, books=self.books))

    def bulk_mark_book(self, book: str, chapter_count: int, completed: bool) -> SyncResult:
        return self._bulk(
            lambda: sync_engine.bulk_mark_book(self.user_id, book, chapter_count, completed, books=self.books)
        )

    def stats(self, today: Optional[date] = None) -> StatsSnapshot:
        return get_stats(self.user_id, today=today, books=self.books)
