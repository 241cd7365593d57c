from reading_plan import storage, toggle_engine
from reading_plan.errors import NotFound, StoreUnavailable
from reading_plan.ledger import build_ledger
from reading_plan.schedule_engine import ScheduleAdvancer
from reading_plan.stats_engine import completion_rate
from reading_plan.types import CurriculumBook

NOW = "2024-01-05T08:00:00+00:00"
BOOKS = [CurriculumBook("Genesis", 3)]


def test_toggle_updates_ledger_and_store(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))
    ledger = build_ledger([], BOOKS)

    result = toggle_engine.toggle_chapter("u1", ledger, "Genesis", 1, True, books=BOOKS, now=NOW)

    assert result.success
    assert ledger["Genesis"][1] is True
    assert completion_rate(ledger) == 33
    stored = storage.find_record("u1", "Genesis", 1)
    assert stored.completed is True
    assert stored.completed_at == NOW


def test_repeated_toggles_keep_one_record(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))
    ledger = build_ledger([], BOOKS)

    toggle_engine.toggle_chapter("u1", ledger, "Genesis", 2, True, books=BOOKS, now=NOW)
    toggle_engine.toggle_chapter("u1", ledger, "Genesis", 2, True, books=BOOKS, now=NOW)
    toggle_engine.toggle_chapter("u1", ledger, "Genesis", 2, False, books=BOOKS, now=NOW)

    records = storage.fetch_records("u1")
    assert len(records) == 1
    assert records[0].completed is False
    assert records[0].completed_at is None
    assert ledger["Genesis"][2] is False


def test_failed_write_rolls_back_the_ledger(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))
    ledger = build_ledger([], BOOKS)

    def _unavailable(record):
        raise StoreUnavailable("database is locked")

    monkeypatch.setattr("reading_plan.storage.upsert_record", _unavailable)

    result = toggle_engine.toggle_chapter("u1", ledger, "Genesis", 1, True, books=BOOKS, now=NOW)

    assert not result.success
    assert result.error == "database is locked"
    assert ledger["Genesis"][1] is False


def test_invalid_chapter_is_rejected_without_writing(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))
    ledger = build_ledger([], BOOKS)

    result = toggle_engine.toggle_chapter("u1", ledger, "Genesis", 9, True, books=BOOKS, now=NOW)

    assert not result.success
    assert ledger == {"Genesis": {1: False, 2: False, 3: False}}
    assert storage.fetch_records("u1") == []


def test_vanished_record_falls_back_to_insert(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))
    ledger = build_ledger([], BOOKS)
    toggle_engine.toggle_chapter("u1", ledger, "Genesis", 1, True, books=BOOKS, now=NOW)

    def _gone(record_id, fields):
        storage.delete_user_records("u1")
        raise NotFound(f"Record {record_id} no longer exists")

    monkeypatch.setattr("reading_plan.storage.update_record", _gone)

    result = toggle_engine.toggle_chapter("u1", ledger, "Genesis", 1, True, books=BOOKS, now=NOW)

    assert result.success
    assert storage.find_record("u1", "Genesis", 1).completed is True


def test_day_just_completed_only_on_the_finishing_toggle(tmp_path, monkeypatch):
    monkeypatch.setenv("READING_PLAN_DB_PATH", str(tmp_path / "reading_plan_state.db"))
    books = [CurriculumBook("Genesis", 4)]
    ledger = build_ledger([], books)
    advancer = ScheduleAdvancer(books, chapters_per_day=2)
    advancer.initialize(ledger)

    first = toggle_engine.toggle_chapter("u1", ledger, "Genesis", 1, True, advancer=advancer, books=books, now=NOW)
    second = toggle_engine.toggle_chapter("u1", ledger, "Genesis", 2, True, advancer=advancer, books=books, now=NOW)
    extra = toggle_engine.toggle_chapter("u1", ledger, "Genesis", 3, True, advancer=advancer, books=books, now=NOW)

    assert first.day_just_completed is False
    assert second.day_just_completed is True
    assert extra.day_just_completed is False
