"""Error types raised by the record store and the reading engines."""

from __future__ import annotations


class ReadingPlanError(Exception):
    """Base class for reading plan failures."""


class StoreUnavailable(ReadingPlanError):
    """The record store could not be reached or rejected the operation."""


class NotFound(ReadingPlanError):
    """A store record expected to exist is gone."""


class InvalidTarget(ReadingPlanError):
    """A book/chapter reference is not part of the curriculum."""

    def __init__(self, book: str, chapter: int | None = None):
        self.book = book
        self.chapter = chapter
        label = book if chapter is None else f"{book} {chapter}"
        super().__init__(f"Not in the curriculum: {label}")
