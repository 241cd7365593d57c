"""Consecutive-day reading streaks from completion timestamps."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from .types import CompletionRecord

logger = logging.getLogger(__name__)


def completion_day(value: Optional[str]) -> Optional[date]:
    """Calendar date of an ISO timestamp as stored, without timezone shifting."""

    if not value:
        return None
    value = value.strip()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        # Older interpreters reject fractional seconds other than 3 or 6 digits.
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            logger.warning("Skipping unparseable completion timestamp %r", value)
            return None


def completion_dates(records: Iterable[CompletionRecord]) -> List[date]:
    """Distinct completion dates of completed records, newest first."""

    days = set()
    for record in records:
        if not record.completed:
            continue
        day = completion_day(record.completed_at)
        if day is not None:
            days.add(day)
    return sorted(days, reverse=True)


def compute_streak(records: Iterable[CompletionRecord]) -> int:
    """Length of the run of consecutive days ending at the latest completion.

    The latest completion does not have to be today; how long ago it was is
    reported separately by :func:`last_read_date`.
    """

    days = completion_dates(records)
    if not days:
        return 0

    streak = 1
    previous = days[0]
    for day in days[1:]:
        if previous - day != timedelta(days=1):
            break
        streak += 1
        previous = day
    return streak


def last_read_date(records: Iterable[CompletionRecord]) -> Optional[date]:
    days = completion_dates(records)
    return days[0] if days else None
