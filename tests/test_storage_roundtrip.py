from datetime import date

import pytest

from reading_plan import storage
from reading_plan.errors import NotFound
from reading_plan.types import CompletionRecord, ReadingPlan


def _record(book: str, chapter: int, completed: bool = True, user_id: str = "u1") -> CompletionRecord:
    return CompletionRecord(
        user_id=user_id,
        book=book,
        chapter=chapter,
        completed=completed,
        completed_at="2024-01-01T08:00:00+00:00" if completed else None,
    )


def test_upsert_keeps_one_row_per_chapter(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))

    first = storage.upsert_record(_record("Genesis", 1))
    second = storage.upsert_record(_record("Genesis", 1, completed=False))

    assert first.id == second.id
    records = storage.fetch_records("u1")
    assert len(records) == 1
    assert records[0].completed is False
    assert records[0].completed_at is None
    assert storage.fetch_records("u1", completed_only=True) == []


def test_update_record_by_id(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))

    stored = storage.upsert_record(_record("Genesis", 1))
    storage.update_record(stored.id, {"completed": False, "completed_at": "2024-01-02T08:00:00"})

    reloaded = storage.find_record("u1", "Genesis", 1)
    assert reloaded.completed is False
    assert reloaded.completed_at is None

    with pytest.raises(NotFound):
        storage.update_record(9999, {"completed": True})
    with pytest.raises(ValueError):
        storage.update_record(stored.id, {"book": "Exodus"})


def test_batch_update_reports_vanished_rows(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))

    assert storage.batch_upsert([_record("Genesis", 1), _record("Genesis", 2)]) == 2
    stored = storage.fetch_records("u1")

    changes = [
        CompletionRecord(id=stored[0].id, user_id="u1", book="Genesis", chapter=1, completed=False),
        CompletionRecord(id=4242, user_id="u1", book="Genesis", chapter=3, completed=True,
                         completed_at="2024-01-02T08:00:00"),
    ]
    missing = storage.batch_update(changes)

    assert [record.chapter for record in missing] == [3]
    assert storage.find_record("u1", "Genesis", 1).completed is False
    assert storage.find_record("u1", "Genesis", 3) is None


def test_records_are_scoped_per_user(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))

    storage.batch_upsert([_record("Genesis", 1), _record("John", 3, user_id="u2")])

    assert [record.book for record in storage.fetch_records("u2")] == ["John"]
    assert storage.list_user_ids() == ["u1", "u2"]
    assert len(storage.fetch_all_records()) == 2

    assert storage.delete_user_records("u1") == 1
    assert storage.fetch_records("u1") == []
    assert storage.list_user_ids() == ["u2"]


def test_reading_plan_defaults_are_persisted(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))
    monkeypatch.setenv("READING_PLAN_CHAPTERS_PER_DAY", "3")

    plan = storage.load_reading_plan("u1", today=date(2024, 1, 1))
    assert plan.start_date == "2024-01-01"
    assert plan.chapters_per_day == 3

    again = storage.load_reading_plan("u1", today=date(2024, 5, 1))
    assert again.start_date == "2024-01-01"

    storage.save_reading_plan(ReadingPlan(user_id="u1", start_date="2024-02-01", chapters_per_day=5))
    updated = storage.load_reading_plan("u1")
    assert updated.start_date == "2024-02-01"
    assert updated.chapters_per_day == 5


def test_completed_rows_always_get_a_timestamp(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))

    stored = storage.upsert_record(
        CompletionRecord(user_id="u1", book="Genesis", chapter=1, completed=True)
    )
    assert stored.completed_at

    storage.update_record(stored.id, {"completed": False})
    assert storage.find_record("u1", "Genesis", 1).completed_at is None

    storage.update_record(stored.id, {"completed": True})
    reloaded = storage.find_record("u1", "Genesis", 1)
    assert reloaded.completed is True
    assert reloaded.completed_at
