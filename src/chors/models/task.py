"""Task data models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from chors.utils.dates import as_datetime

TaskStatus = Literal["open", "done", "cancelled"]
TASK_STATUSES: tuple[TaskStatus, ...] = ("open", "done", "cancelled")

TaskId = int

PRIORITY_HIGHEST = 1
PRIORITY_LOWEST = 4


def _now() -> datetime:
    return datetime.now().astimezone()


def _words_with_prefix(text: str, prefix: str) -> list[str]:
    found: list[str] = []
    for word in text.split():
        if word.startswith(prefix) and len(word) > 1 and word[1:] not in found:
            found.append(word[1:])
    return found


def extract_tags(title: str) -> list[str]:
    """Return the ``#tags`` of a title, in order of first appearance."""
    return _words_with_prefix(title, "#")


def extract_contexts(title: str) -> list[str]:
    """Return the ``@contexts`` of a title, in order of first appearance."""
    return _words_with_prefix(title, "@")


class Task(BaseModel):
    """Task model representing one node of the task forest.

    Attributes:
        id: Stable identifier, never reused after deletion
        title: One-line summary; ``#tag`` and ``@context`` words are parsed from it
        description: Optional longer text
        status: One of "open", "done", "cancelled"
        due: Optional due date/time (naive local)
        scheduled: Optional scheduled date/time (naive local)
        priority: Priority level (1=highest, 4=lowest)
        parent_id: Parent task, None for roots
        children: Child ids in display order
        created_at: Creation timestamp
        updated_at: Last update timestamp
        completed_at: When the task was marked done
    """

    id: TaskId
    title: str
    description: str | None = None
    status: TaskStatus = "open"
    due: datetime | None = None
    scheduled: datetime | None = None
    priority: int = Field(default=PRIORITY_LOWEST, ge=PRIORITY_HIGHEST, le=PRIORITY_LOWEST)
    parent_id: TaskId | None = None
    children: list[TaskId] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    completed_at: datetime | None = None

    @field_validator("due", "scheduled", mode="before")
    @classmethod
    def _normalise_dates(cls, value):
        if isinstance(value, (date, datetime)):
            return as_datetime(value)
        return value

    @property
    def tags(self) -> list[str]:
        return extract_tags(self.title)

    @property
    def contexts(self) -> list[str]:
        return extract_contexts(self.title)

    @property
    def is_open(self) -> bool:
        return self.status == "open"

    @property
    def placement_date(self) -> date | None:
        """Day the task sits on in the calendar: scheduled first, then due."""
        when = self.scheduled or self.due
        return when.date() if when else None

    def __str__(self) -> str:
        marker = {"open": "[ ]", "done": "[x]", "cancelled": "[-]"}[self.status]
        return f"{marker} {self.title}"


class TaskPatch(BaseModel):
    """Partial update for a task.

    Only fields explicitly given are applied, so ``TaskPatch(due=None)``
    clears the due date while ``TaskPatch()`` changes nothing.
    """

    title: str | None = None
    description: str | None = None
    due: datetime | None = None
    scheduled: datetime | None = None
    priority: int | None = Field(default=None, ge=PRIORITY_HIGHEST, le=PRIORITY_LOWEST)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Title cannot be empty")
        return value

    @field_validator("description")
    @classmethod
    def _blank_description_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        return value or None

    @field_validator("due", "scheduled", mode="before")
    @classmethod
    def _normalise_dates(cls, value):
        if isinstance(value, (date, datetime)):
            return as_datetime(value)
        return value

    def changes(self) -> dict:
        """Return only the fields that were explicitly set."""
        return self.model_dump(exclude_unset=True)
