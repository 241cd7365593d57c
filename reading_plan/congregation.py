"""Aggregates across every reader for the admin dashboard."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .book_catalog import load_books
from .ledger import build_ledger, completed_count
from .stats_engine import completion_rate, round_half_up
from .streak_engine import completion_day, compute_streak, last_read_date
from .types import CompletionRecord, CongregationStats, CurriculumBook, MemberSummary

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Lower bounds of the completed-chapter buckets; the last bucket is open ended.
HISTOGRAM_EDGES = [0, 1, 50, 200, 600, 1189]


def _completed(records: Iterable[CompletionRecord]) -> List[CompletionRecord]:
    return [record for record in records if record.completed]


def _by_user(records: Iterable[CompletionRecord]) -> Dict[str, List[CompletionRecord]]:
    grouped: Dict[str, List[CompletionRecord]] = defaultdict(list)
    for record in records:
        grouped[record.user_id].append(record)
    return grouped


def top_books(records: Iterable[CompletionRecord], n: int = 5) -> List[Tuple[str, int]]:
    """Most-read books, count descending; ties keep first-seen order."""

    counts: Dict[str, int] = {}
    for record in _completed(records):
        counts[record.book] = counts.get(record.book, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return ranked[:n]


def weekday_distribution(
    records: Iterable[CompletionRecord], today: Optional[date] = None, days: int = 30
) -> Dict[str, int]:
    today = today or date.today()
    cutoff = today - timedelta(days=days - 1)
    distribution = {name: 0 for name in WEEKDAYS}
    for record in _completed(records):
        day = completion_day(record.completed_at)
        if day is None or day < cutoff or day > today:
            continue
        distribution[WEEKDAYS[day.weekday()]] += 1
    return distribution


def _bucket_label(idx: int, edges: Sequence[int]) -> str:
    low = edges[idx]
    if idx + 1 >= len(edges):
        return f"{low}+"
    high = edges[idx + 1] - 1
    return str(low) if high == low else f"{low}-{high}"


def completion_histogram(
    records: Iterable[CompletionRecord], edges: Sequence[int] = HISTOGRAM_EDGES
) -> Dict[str, int]:
    """Number of readers per completed-chapter bucket."""

    histogram = {_bucket_label(idx, edges): 0 for idx in range(len(edges))}
    per_user: Dict[str, set] = defaultdict(set)
    for record in _completed(records):
        per_user[record.user_id].add((record.book, record.chapter))

    for chapters in per_user.values():
        count = len(chapters)
        bucket = 0
        for idx, low in enumerate(edges):
            if count >= low:
                bucket = idx
        histogram[_bucket_label(bucket, edges)] += 1
    return histogram


def member_summaries(
    records: Iterable[CompletionRecord], books: Optional[Sequence[CurriculumBook]] = None
) -> List[MemberSummary]:
    """Per-reader totals, most chapters read first."""

    books = load_books() if books is None else books
    summaries: List[MemberSummary] = []
    for user_id, user_records in _by_user(records).items():
        ledger = build_ledger(user_records, books)
        last_active = last_read_date(user_records)
        summaries.append(
            MemberSummary(
                user_id=user_id,
                chapters_read=completed_count(ledger),
                last_active=last_active.isoformat() if last_active else None,
                streak_days=compute_streak(user_records),
                completion_rate=completion_rate(ledger),
            )
        )
    return sorted(summaries, key=lambda summary: summary.chapters_read, reverse=True)


def congregation_stats(
    records: Iterable[CompletionRecord],
    n: int = 5,
    books: Optional[Sequence[CurriculumBook]] = None,
) -> CongregationStats:
    records = list(records)
    members = member_summaries(records, books)
    total_read = sum(member.chapters_read for member in members)
    average = (
        round_half_up(sum(member.completion_rate for member in members) / len(members))
        if members
        else 0
    )
    return CongregationStats(
        total_users=len(members),
        total_chapters_read=total_read,
        average_completion=average,
        top_books=top_books(records, n),
    )
