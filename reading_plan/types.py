"""Data models used across the reading plan app."""

from __future__ import annotations

from dataclasses import dataclass, asdict, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


@dataclass(frozen=True)
class CurriculumBook:
    name: str
    chapters: int
    testament: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CurriculumBook":
        chapters = int(payload["chapters"])
        if chapters <= 0:
            raise ValueError(f"Book {payload['name']!r} must have at least one chapter")
        return cls(
            name=str(payload["name"]),
            chapters=chapters,
            testament=str(payload.get("testament", "")),
        )


@dataclass(frozen=True)
class ChapterRef:
    """One chapter of one book; the identity key for every ledger entry."""

    book: str
    chapter: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def label(self) -> str:
        return f"{self.book} {self.chapter}"


@dataclass
class CompletionRecord:
    """One stored row of the ledger store, one per user per touched chapter.

    ``completed_at`` is an ISO timestamp and is only set while ``completed``
    is true.
    """

    user_id: str
    book: str
    chapter: int
    completed: bool = False
    completed_at: Optional[str] = None
    id: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.completed:
            self.completed_at = None

    @property
    def ref(self) -> ChapterRef:
        return ChapterRef(self.book, self.chapter)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CompletionRecord":
        payload = payload or {}
        record_id = payload.get("id")
        completed_at = payload.get("completed_at")
        return cls(
            id=int(record_id) if record_id is not None else None,
            user_id=str(payload.get("user_id", "")),
            book=str(payload.get("book", "")),
            chapter=int(payload.get("chapter", 0) or 0),
            completed=_as_bool(payload.get("completed", False)),
            completed_at=str(completed_at) if completed_at is not None else None,
        )


@dataclass
class ReadingPlan:
    user_id: str
    start_date: str = field(default_factory=lambda: date.today().isoformat())
    chapters_per_day: int = 4

    @property
    def start(self) -> date:
        return date.fromisoformat(self.start_date)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ReadingPlan":
        payload = payload or {}
        return cls(
            user_id=str(payload.get("user_id", "")),
            start_date=str(payload.get("start_date", date.today().isoformat())),
            chapters_per_day=int(payload.get("chapters_per_day", 4) or 4),
        )


@dataclass
class StatsSnapshot:
    total_chapters_read: int
    streak_days: int
    last_read_date: Optional[str]
    completion_rate: int
    schedule_status: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookProgress:
    book: str
    completed: int
    total: int

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return int(100 * self.completed / self.total + 0.5)

    @property
    def is_finished(self) -> bool:
        return self.total > 0 and self.completed == self.total

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["percentage"] = self.percentage
        return payload


@dataclass
class WeeklyDay:
    day: date
    day_number: int
    complete: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.day.isoformat(), "day_number": self.day_number, "complete": self.complete}


@dataclass
class ToggleResult:
    success: bool
    day_just_completed: bool = False
    error: Optional[str] = None


@dataclass
class SyncResult:
    success: bool
    inserted: int = 0
    updated: int = 0
    failed_batches: int = 0
    error: Optional[str] = None

    @property
    def writes(self) -> int:
        return self.inserted + self.updated


@dataclass
class MemberSummary:
    user_id: str
    chapters_read: int
    last_active: Optional[str]
    streak_days: int
    completion_rate: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CongregationStats:
    total_users: int
    total_chapters_read: int
    average_completion: int
    top_books: List[Tuple[str, int]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_users": self.total_users,
            "total_chapters_read": self.total_chapters_read,
            "average_completion": self.average_completion,
            "top_books": [{"book": book, "count": count} for book, count in self.top_books],
        }
