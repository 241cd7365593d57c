"""SQLite record store for chapter completions and per-user reading plans."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator, List, Optional, Sequence

from .config import chapters_per_day, db_path, store_timeout
from .errors import NotFound, StoreUnavailable
from .types import CompletionRecord, ReadingPlan, utc_now_iso

logger = logging.getLogger(__name__)

_RECORD_COLUMNS = "id, user_id, book, chapter, completed, completed_at"
_UPDATABLE_FIELDS = {"completed", "completed_at"}


def _connection(path=None):
    path = path or db_path()
    conn = sqlite3.connect(str(path), timeout=store_timeout())
    conn.row_factory = sqlite3.Row
    return conn


def _table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return {str(row["name"]) for row in rows}


def _ensure_column(conn: sqlite3.Connection, table: str, column_definition: str) -> None:
    column_name = column_definition.split()[0]
    if column_name in _table_columns(conn, table):
        return
    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column_definition}")


def init_db(conn=None):
    conn = conn or _connection()
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS reading_progress (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            book TEXT NOT NULL,
            chapter INTEGER NOT NULL,
            completed INTEGER NOT NULL DEFAULT 0,
            completed_at TEXT,
            UNIQUE (user_id, book, chapter)
        );

        CREATE INDEX IF NOT EXISTS idx_reading_progress_user
        ON reading_progress(user_id);

        CREATE TABLE IF NOT EXISTS reading_plans (
            user_id TEXT PRIMARY KEY,
            start_date TEXT NOT NULL
        );
        """
    )

    # Migration-safe additions for existing DBs.
    _ensure_column(conn, "reading_plans", "chapters_per_day INTEGER NOT NULL DEFAULT 4")

    conn.commit()


@contextmanager
def _session(path=None) -> Iterator[sqlite3.Connection]:
    """Open, initialise, commit and close one connection.

    Any SQLite failure is re-raised as :class:`StoreUnavailable`.
    """

    conn = None
    try:
        conn = _connection(path)
        init_db(conn)
        yield conn
        conn.commit()
    except sqlite3.Error as exc:
        if conn is not None:
            conn.rollback()
        logger.warning("Record store failure: %s", exc)
        raise StoreUnavailable(str(exc)) from exc
    finally:
        if conn is not None:
            conn.close()


def _record_from_row(row: sqlite3.Row) -> CompletionRecord:
    return CompletionRecord.from_dict(dict(row))


def _record_params(record: CompletionRecord) -> Dict[str, object]:
    completed_at = (record.completed_at or utc_now_iso()) if record.completed else None
    return {
        "user_id": record.user_id,
        "book": record.book,
        "chapter": int(record.chapter),
        "completed": 1 if record.completed else 0,
        "completed_at": completed_at,
    }


_UPSERT_SQL = """
    INSERT INTO reading_progress (user_id, book, chapter, completed, completed_at)
    VALUES (:user_id, :book, :chapter, :completed, :completed_at)
    ON CONFLICT(user_id, book, chapter) DO UPDATE SET
        completed = excluded.completed,
        completed_at = excluded.completed_at;
"""


def fetch_records(user_id: str, completed_only: bool = False) -> List[CompletionRecord]:
    """All records for one user, in insertion order."""

    q = f"SELECT {_RECORD_COLUMNS} FROM reading_progress WHERE user_id = ?"
    if completed_only:
        q += " AND completed = 1"
    q += " ORDER BY id ASC"
    with _session() as conn:
        rows = conn.execute(q, (user_id,)).fetchall()
    return [_record_from_row(row) for row in rows]


def fetch_all_records(completed_only: bool = True) -> List[CompletionRecord]:
    """Records across every user, for the admin views."""

    q = f"SELECT {_RECORD_COLUMNS} FROM reading_progress"
    if completed_only:
        q += " WHERE completed = 1"
    q += " ORDER BY id ASC"
    with _session() as conn:
        rows = conn.execute(q).fetchall()
    return [_record_from_row(row) for row in rows]


def find_record(user_id: str, book: str, chapter: int) -> Optional[CompletionRecord]:
    with _session() as conn:
        row = conn.execute(
            f"SELECT {_RECORD_COLUMNS} FROM reading_progress WHERE user_id = ? AND book = ? AND chapter = ?",
            (user_id, book, int(chapter)),
        ).fetchone()
    if row is None:
        return None
    return _record_from_row(row)


def upsert_record(record: CompletionRecord) -> CompletionRecord:
    """Insert or update keyed on (user_id, book, chapter); returns the stored row."""

    params = _record_params(record)
    with _session() as conn:
        conn.execute(_UPSERT_SQL, params)
        row = conn.execute(
            f"SELECT {_RECORD_COLUMNS} FROM reading_progress WHERE user_id = ? AND book = ? AND chapter = ?",
            (params["user_id"], params["book"], params["chapter"]),
        ).fetchone()
    return _record_from_row(row)


def batch_upsert(records: Sequence[CompletionRecord]) -> int:
    """Upsert many records in one transaction; returns how many were sent."""

    if not records:
        return 0
    with _session() as conn:
        conn.executemany(_UPSERT_SQL, [_record_params(record) for record in records])
    return len(records)


def update_record(record_id: int, fields: Dict[str, object]) -> None:
    """Update selected fields of one record by id; raises NotFound if it is gone."""

    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {sorted(unknown)}")
    if not fields:
        return

    values = dict(fields)
    if "completed" in values:
        values["completed"] = 1 if values["completed"] else 0
        if not values["completed"]:
            values["completed_at"] = None
        elif not values.get("completed_at"):
            values["completed_at"] = utc_now_iso()
    assignments = ", ".join(f"{name} = :{name}" for name in sorted(values))
    values["id"] = int(record_id)

    with _session() as conn:
        cursor = conn.execute(f"UPDATE reading_progress SET {assignments} WHERE id = :id", values)
        matched = int(cursor.rowcount or 0)
    if matched == 0:
        raise NotFound(f"Record {record_id} no longer exists")


def batch_update(records: Sequence[CompletionRecord]) -> List[CompletionRecord]:
    """Update many existing records by id in one transaction.

    Returns the records whose row had vanished, so callers can insert them.
    """

    missing: List[CompletionRecord] = []
    if not records:
        return missing
    with _session() as conn:
        for record in records:
            params = _record_params(record)
            cursor = conn.execute(
                "UPDATE reading_progress SET completed = ?, completed_at = ? WHERE id = ?",
                (params["completed"], params["completed_at"], record.id),
            )
            if not cursor.rowcount:
                missing.append(record)
    return missing


def delete_user_records(user_id: str) -> int:
    """Remove every record and the plan for one user (account removal)."""

    with _session() as conn:
        cursor = conn.execute("DELETE FROM reading_progress WHERE user_id = ?", (user_id,))
        removed = int(cursor.rowcount or 0)
        conn.execute("DELETE FROM reading_plans WHERE user_id = ?", (user_id,))
    return removed


def list_user_ids() -> List[str]:
    with _session() as conn:
        rows = conn.execute(
            "SELECT DISTINCT user_id FROM reading_progress ORDER BY user_id ASC"
        ).fetchall()
    return [str(row["user_id"]) for row in rows]


def save_reading_plan(plan: ReadingPlan) -> ReadingPlan:
    """Persist the plan settings for one user."""

    with _session() as conn:
        conn.execute(
            """
            INSERT INTO reading_plans (user_id, start_date, chapters_per_day)
            VALUES (:user_id, :start_date, :chapters_per_day)
            ON CONFLICT(user_id) DO UPDATE SET
                start_date = excluded.start_date,
                chapters_per_day = excluded.chapters_per_day;
            """,
            plan.to_dict(),
        )
    return plan


def load_reading_plan(user_id: str, today: date | None = None) -> ReadingPlan:
    """Load a user's plan, creating and persisting a default one on first use."""

    with _session() as conn:
        row = conn.execute(
            "SELECT user_id, start_date, chapters_per_day FROM reading_plans WHERE user_id = ?",
            (user_id,),
        ).fetchone()
    if row is not None:
        return ReadingPlan.from_dict(dict(row))

    plan = ReadingPlan(
        user_id=user_id,
        start_date=(today or date.today()).isoformat(),
        chapters_per_day=chapters_per_day(),
    )
    return save_reading_plan(plan)
