from datetime import date

from reading_plan import congregation
from reading_plan.types import CompletionRecord, CurriculumBook


def _record(user_id: str, book: str, chapter: int, completed_at: str) -> CompletionRecord:
    return CompletionRecord(user_id=user_id, book=book, chapter=chapter, completed=True, completed_at=completed_at)


def _records():
    return [
        _record("alice", "Psalms", 1, "2024-01-01T08:00:00"),
        _record("bob", "John", 1, "2024-01-02T08:00:00"),
        _record("alice", "Psalms", 2, "2024-01-02T08:00:00"),
        _record("bob", "John", 2, "2024-01-03T08:00:00"),
        _record("bob", "Genesis", 1, "2023-11-01T08:00:00"),
        CompletionRecord(user_id="carol", book="Genesis", chapter=1, completed=False),
    ]


def test_top_books_ties_keep_first_seen_order():
    assert congregation.top_books(_records(), n=5) == [("Psalms", 2), ("John", 2), ("Genesis", 1)]
    assert congregation.top_books(_records(), n=1) == [("Psalms", 2)]


def test_weekday_distribution_uses_last_thirty_days():
    distribution = congregation.weekday_distribution(_records(), today=date(2024, 1, 10))

    assert list(distribution) == congregation.WEEKDAYS
    # 2024-01-01 was a Monday.
    assert distribution["Monday"] == 1
    assert distribution["Tuesday"] == 2
    assert distribution["Wednesday"] == 1
    assert sum(distribution.values()) == 4


def test_completion_histogram_buckets_readers():
    histogram = congregation.completion_histogram(_records())

    assert list(histogram) == ["0", "1-49", "50-199", "200-599", "600-1188", "1189+"]
    assert histogram["1-49"] == 2
    assert sum(histogram.values()) == 2


def test_member_summaries_and_congregation_totals():
    books = [CurriculumBook("Genesis", 2), CurriculumBook("Psalms", 2), CurriculumBook("John", 2)]

    members = congregation.member_summaries(_records(), books)

    assert [member.user_id for member in members] == ["bob", "alice", "carol"]
    assert members[0].chapters_read == 3
    assert members[0].last_active == "2024-01-03"
    assert members[1].streak_days == 2
    assert members[2].chapters_read == 0
    assert members[2].last_active is None

    overview = congregation.congregation_stats(_records(), books=books)

    assert overview.total_users == 3
    assert overview.total_chapters_read == 5
    # 50%, 33% and 0% average to 28%.
    assert overview.average_completion == 28
    assert overview.to_dict()["top_books"][0] == {"book": "Psalms", "count": 2}
