"""Diff models."""

from dataclasses import dataclass
from enum import Enum
from typing import Self

from pydantic import BaseModel, Field, model_validator


class ChangeType(str, Enum):
    """Kind of change described by a hunk or symbol record."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


class DiffChange(BaseModel):
    """A line-level hunk. Line numbers are 1-based and inclusive.

    `added` hunks carry only the new range, `removed` hunks only the old
    range, and `modified` hunks both; `content` is always the new text
    except for `removed`, where it is the text that was removed.
    """

    type: ChangeType
    old_start: int | None = Field(default=None, ge=1)
    old_end: int | None = Field(default=None, ge=1)
    new_start: int | None = Field(default=None, ge=1)
    new_end: int | None = Field(default=None, ge=1)
    content: str = ""

    @model_validator(mode="after")
    def validate_ranges(self) -> Self:
        """Validate that each hunk type carries the ranges it needs."""
        has_old = self.old_start is not None and self.old_end is not None
        has_new = self.new_start is not None and self.new_end is not None
        if self.type == ChangeType.ADDED and (not has_new or self.old_start is not None):
            raise ValueError("added hunks carry only new_start/new_end")
        if self.type == ChangeType.REMOVED and (not has_old or self.new_start is not None):
            raise ValueError("removed hunks carry only old_start/old_end")
        if self.type == ChangeType.MODIFIED and not (has_old and has_new):
            raise ValueError("modified hunks carry both old and new ranges")
        if has_old and self.old_end < self.old_start:  # type: ignore[operator]
            raise ValueError("old_end must be >= old_start")
        if has_new and self.new_end < self.new_start:  # type: ignore[operator]
            raise ValueError("new_end must be >= new_start")
        return self

    @classmethod
    def added(cls, new_start: int, new_end: int, content: str) -> "DiffChange":
        return cls(type=ChangeType.ADDED, new_start=new_start, new_end=new_end, content=content)

    @classmethod
    def removed(cls, old_start: int, old_end: int, content: str) -> "DiffChange":
        return cls(type=ChangeType.REMOVED, old_start=old_start, old_end=old_end, content=content)

    @classmethod
    def modified(
        cls, old_start: int, old_end: int, new_start: int, new_end: int, content: str
    ) -> "DiffChange":
        return cls(
            type=ChangeType.MODIFIED,
            old_start=old_start,
            old_end=old_end,
            new_start=new_start,
            new_end=new_end,
            content=content,
        )


class SymbolChange(BaseModel):
    """Symbol-level change record."""

    type: ChangeType
    symbol: str
    code: str = ""
    old_code: str | None = None
    line_number: int = Field(default=0, ge=0)


@dataclass
class DiffStats:
    """Line counts for a hunk list."""

    total_changes: int = 0
    added_lines: int = 0
    removed_lines: int = 0
    modified_lines: int = 0


@dataclass
class MinimalUpdate:
    """Changed hunks for a file, optionally filtered to target symbols."""

    changes: list[DiffChange]
    stats: DiffStats
    summary: str


@dataclass
class DiffAnalysis:
    """Symbol and line level changes between two versions of a file."""

    changes: list[SymbolChange]
    affected_symbols: list[str]
    minimal_update: str
    token_savings: int
    line_changes: list[DiffChange]
    summary: str
