"""Daily assignment window and read-ahead suggestions."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .book_catalog import flatten, load_books
from .config import chapters_per_day as default_chapters_per_day
from .ledger import Ledger, is_completed
from .types import ChapterRef, CurriculumBook


def assignment_for_day(
    day_number: int,
    books: Sequence[CurriculumBook],
    chapters_per_day: int,
    order: Optional[List[ChapterRef]] = None,
) -> List[ChapterRef]:
    """Calendar-anchored slice ``[day * n, day * n + n)`` of the curriculum.

    Negative days and days past the end of the curriculum yield an empty list.
    """

    if day_number < 0 or chapters_per_day <= 0:
        return []
    order = flatten(books) if order is None else order
    start = day_number * chapters_per_day
    return order[start:start + chapters_per_day]


class ScheduleAdvancer:
    """Session-scoped pointer to the first chapter of today's assignment.

    The pointer is computed once from the ledger when the session starts and
    is then left alone, so unchecking an earlier chapter does not pull
    today's reading backward.
    """

    def __init__(
        self,
        books: Optional[Sequence[CurriculumBook]] = None,
        chapters_per_day: Optional[int] = None,
    ):
        """
        Args:
            books: Curriculum to walk (default: :func:`load_books`).
            chapters_per_day: Assignment size (default: from config).
        """
        self.books = list(load_books() if books is None else books)
        self.chapters_per_day = chapters_per_day or default_chapters_per_day()
        self.order: List[ChapterRef] = flatten(self.books)
        self.active_start_index: Optional[int] = None

    @property
    def initialized(self) -> bool:
        return self.active_start_index is not None

    def initialize(self, ledger: Ledger, force: bool = False) -> Optional[int]:
        """Point at the first unread chapter, or the last one if all are read.

        Only the first call has an effect unless ``force`` is set.
        """
        if self.initialized and not force:
            return self.active_start_index
        if not self.order:
            self.active_start_index = None
            return None

        for idx, ref in enumerate(self.order):
            if not is_completed(ledger, ref):
                self.active_start_index = idx
                break
        else:
            self.active_start_index = len(self.order) - 1
        return self.active_start_index

    def _window_end(self) -> int:
        if self.active_start_index is None:
            return 0
        return min(self.active_start_index + self.chapters_per_day, len(self.order))

    def todays_assignment(self) -> List[ChapterRef]:
        if self.active_start_index is None:
            return []
        return self.order[self.active_start_index:self._window_end()]

    def all_assignment_complete(self, ledger: Ledger) -> bool:
        assignment = self.todays_assignment()
        if not assignment:
            return False
        return all(is_completed(ledger, ref) for ref in assignment)

    def read_ahead_chapters(self, ledger: Ledger) -> List[ChapterRef]:
        """Read-ahead chapters currently on offer, oldest first.

        The chapter right after the window is offered once today's reading is
        done; each further chapter only once the one before it is read.
        """
        if not self.all_assignment_complete(ledger):
            return []
        offered: List[ChapterRef] = []
        for ref in self.order[self._window_end():]:
            offered.append(ref)
            if not is_completed(ledger, ref):
                break
        return offered

    def read_ahead(self, ledger: Ledger) -> Optional[ChapterRef]:
        """The next unread read-ahead chapter, or None."""
        offered = self.read_ahead_chapters(ledger)
        if offered and not is_completed(ledger, offered[-1]):
            return offered[-1]
        return None


def day_just_completed(advancer: ScheduleAdvancer, before: Ledger, after: Ledger) -> bool:
    """True only for the incomplete -> complete transition of today's assignment."""

    return not advancer.all_assignment_complete(before) and advancer.all_assignment_complete(after)
