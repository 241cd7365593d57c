from datetime import date

from reading_plan.streak_engine import completion_dates, compute_streak, last_read_date
from reading_plan.types import CompletionRecord


def _records(*timestamps):
    return [
        CompletionRecord(user_id="u1", book="Genesis", chapter=idx + 1, completed=True, completed_at=value)
        for idx, value in enumerate(timestamps)
    ]


def test_consecutive_days_count_as_streak():
    records = _records("2024-01-03T07:00:00", "2024-01-02T21:30:00", "2024-01-01T06:15:00")

    assert compute_streak(records) == 3


def test_gap_breaks_streak():
    records = _records("2024-01-03T07:00:00", "2024-01-01T06:15:00")

    assert compute_streak(records) == 1


def test_no_records_means_no_streak():
    assert compute_streak([]) == 0


def test_same_day_completions_count_once():
    records = _records("2024-01-03T07:00:00", "2024-01-03T08:00:00", "2024-01-02T22:00:00Z")

    assert completion_dates(records) == [date(2024, 1, 3), date(2024, 1, 2)]
    assert compute_streak(records) == 2


def test_streak_does_not_require_reading_today():
    records = _records("2020-05-10T10:00:00+00:00", "2020-05-09T10:00:00+00:00")

    assert compute_streak(records) == 2
    assert last_read_date(records) == date(2020, 5, 10)


def test_incomplete_and_unparseable_records_are_skipped():
    records = _records("2024-01-03T07:00:00", "not-a-date")
    records.append(CompletionRecord(user_id="u1", book="Exodus", chapter=1, completed=False))

    assert completion_dates(records) == [date(2024, 1, 3)]
    assert last_read_date([]) is None


def test_odd_fractional_seconds_still_count():
    records = _records("2024-01-02T08:00:00.12345+00:00", "2024-01-01T08:00:00.1Z")

    assert completion_dates(records) == [date(2024, 1, 2), date(2024, 1, 1)]
    assert compute_streak(records) == 2
