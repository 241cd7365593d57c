"""Core modules for the reading plan tracker."""

from .errors import InvalidTarget, NotFound, ReadingPlanError, StoreUnavailable  # noqa: F401
from .types import (  # noqa: F401
    BookProgress,
    ChapterRef,
    CompletionRecord,
    CongregationStats,
    CurriculumBook,
    MemberSummary,
    ReadingPlan,
    StatsSnapshot,
    SyncResult,
    ToggleResult,
    WeeklyDay,
)
