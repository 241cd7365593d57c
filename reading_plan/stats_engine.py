"""Completion metrics: overall rate, pace against the plan, weekly and monthly views."""

from __future__ import annotations

import calendar
from collections import Counter
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .book_catalog import flatten, load_books
from .config import chapters_per_day as default_chapters_per_day
from .ledger import Ledger, build_ledger, completed_count, is_completed, ledger_size
from .schedule_engine import assignment_for_day
from .streak_engine import completion_day, compute_streak, last_read_date
from .types import CompletionRecord, CurriculumBook, ReadingPlan, StatsSnapshot, WeeklyDay


def round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def _as_date(value: date | str) -> date:
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    return value


def completion_rate(ledger: Ledger) -> int:
    total = ledger_size(ledger)
    if total == 0:
        return 0
    return round_half_up(100 * completed_count(ledger) / total)


def days_since_start(start_date: date | str, today: Optional[date] = None) -> int:
    """Whole days elapsed since the plan started; never negative."""

    today = today or date.today()
    return max(0, (today - _as_date(start_date)).days)


def schedule_status(
    total_chapters_read: int,
    start_date: date | str,
    chapters_per_day: int,
    today: Optional[date] = None,
) -> int:
    """Chapters ahead of (positive) or behind (negative) the expected pace."""

    expected = (days_since_start(start_date, today) + 1) * chapters_per_day
    return total_chapters_read - expected


def weekly_grid(
    records: Iterable[CompletionRecord],
    start_date: date | str,
    today: Optional[date] = None,
    chapters_per_day: Optional[int] = None,
    books: Optional[Sequence[CurriculumBook]] = None,
    window: int = 7,
) -> List[WeeklyDay]:
    """For the last ``window`` days, oldest first, whether that day's fixed slice is read.

    Each calendar day maps to the slice of the curriculum it would cover if
    the plan were followed exactly from ``start_date``.
    """

    books = load_books() if books is None else books
    today = today or date.today()
    per_day = chapters_per_day or default_chapters_per_day()
    start = _as_date(start_date)
    ledger = build_ledger(records, books)
    order = flatten(books)

    grid: List[WeeklyDay] = []
    for offset in range(window - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_number = (day - start).days
        assignment = assignment_for_day(day_number, books, per_day, order=order)
        complete = bool(assignment) and all(is_completed(ledger, ref) for ref in assignment)
        grid.append(WeeklyDay(day=day, day_number=day_number, complete=complete))
    return grid


def _completions_per_day(records: Iterable[CompletionRecord]) -> Counter:
    counts: Counter = Counter()
    for record in records:
        if not record.completed:
            continue
        day = completion_day(record.completed_at)
        if day is not None:
            counts[day] += 1
    return counts


def month_readings(records: Iterable[CompletionRecord], year: int, month: int) -> Dict[str, int]:
    """Completions per day for every day of one month, keyed ``YYYY-MM-DD``."""

    counts = _completions_per_day(records)
    _, days_in_month = calendar.monthrange(year, month)
    result: Dict[str, int] = {}
    for day_of_month in range(1, days_in_month + 1):
        day = date(year, month, day_of_month)
        result[day.isoformat()] = counts.get(day, 0)
    return result


def chapters_by_day(
    records: Iterable[CompletionRecord], today: Optional[date] = None, days: int = 7
) -> List[Tuple[date, int]]:
    """Completion counts for the last ``days`` days, oldest first."""

    today = today or date.today()
    counts = _completions_per_day(records)
    return [
        (today - timedelta(days=offset), counts.get(today - timedelta(days=offset), 0))
        for offset in range(days - 1, -1, -1)
    ]


def build_stats(
    records: Sequence[CompletionRecord],
    plan: ReadingPlan,
    today: Optional[date] = None,
    books: Optional[Sequence[CurriculumBook]] = None,
) -> StatsSnapshot:
    books = load_books() if books is None else books
    today = today or date.today()
    ledger = build_ledger(records, books)
    total_read = completed_count(ledger)
    last_day = last_read_date(records)
    return StatsSnapshot(
        total_chapters_read=total_read,
        streak_days=compute_streak(records),
        last_read_date=last_day.isoformat() if last_day else None,
        completion_rate=completion_rate(ledger),
        schedule_status=schedule_status(total_read, plan.start_date, plan.chapters_per_day, today),
    )
