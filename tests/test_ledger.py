from reading_plan import ledger
from reading_plan.book_catalog import load_books
from reading_plan.types import ChapterRef, CompletionRecord, CurriculumBook


def _record(book: str, chapter: int, completed: bool = True) -> CompletionRecord:
    return CompletionRecord(
        user_id="u1",
        book=book,
        chapter=chapter,
        completed=completed,
        completed_at="2024-01-01T09:00:00" if completed else None,
    )


def test_empty_records_build_all_false_ledger():
    books = [CurriculumBook("Genesis", 3)]

    built = ledger.build_ledger([], books)

    assert built == {"Genesis": {1: False, 2: False, 3: False}}
    assert ledger.completed_count(built) == 0


def test_ledger_size_always_matches_curriculum(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_CURRICULUM_PATH", str(tmp_path / "missing.json"))
    books = load_books()
    partial = [_record("Genesis", 1), _record("Psalms", 23), _record("Revelation", 22)]
    full = [_record(ref.book, ref.chapter) for ref in (ChapterRef(b.name, c) for b in books for c in range(1, b.chapters + 1))]

    for records in ([], partial, full):
        assert ledger.ledger_size(ledger.build_ledger(records, books)) == 1189

    assert ledger.completed_count(ledger.build_ledger(full, books)) == 1189


def test_unknown_books_and_incomplete_records_are_ignored():
    books = [CurriculumBook("Genesis", 3)]
    records = [
        _record("Genesis", 2),
        _record("Genesis", 3, completed=False),
        _record("Tobit", 1),
        _record("Genesis", 9),
    ]

    built = ledger.build_ledger(records, books)

    assert built == {"Genesis": {1: False, 2: True, 3: False}}


def test_set_chapter_returns_previous_value_and_copy_is_independent():
    built = ledger.build_ledger([], [CurriculumBook("Genesis", 2)])
    snapshot = ledger.copy_ledger(built)

    assert ledger.set_chapter(built, ChapterRef("Genesis", 1), True) is False
    assert ledger.set_chapter(built, ChapterRef("Genesis", 1), True) is True
    assert snapshot["Genesis"][1] is False


def test_book_progress_and_first_book_with_progress():
    books = [CurriculumBook("Genesis", 3), CurriculumBook("Exodus", 2)]
    built = ledger.build_ledger([_record("Exodus", 1), _record("Exodus", 2)], books)

    progress = ledger.book_progress(built, books)

    assert [(item.book, item.completed, item.total) for item in progress] == [("Genesis", 0, 3), ("Exodus", 2, 2)]
    assert progress[1].percentage == 100
    assert progress[1].is_finished
    assert ledger.first_book_with_progress(built, books) == "Exodus"
