"""On-disk snapshot models.

A snapshot is always complete: every task, every saved view and the active
view name. It is what the storage service reads and writes.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from chors.models.task import PRIORITY_HIGHEST, PRIORITY_LOWEST, TaskId, TaskStatus
from chors.models.view import View

SNAPSHOT_VERSION = 1


class TaskRecord(BaseModel):
    """Flat, serialisable form of a task."""

    id: TaskId
    parent_id: TaskId | None = None
    title: str
    description: str | None = None
    status: TaskStatus = "open"
    due: datetime | None = None
    scheduled: datetime | None = None
    priority: int = Field(default=PRIORITY_LOWEST, ge=PRIORITY_HIGHEST, le=PRIORITY_LOWEST)
    children_order: list[TaskId] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None


class Snapshot(BaseModel):
    """Complete persisted state of a Chors session."""

    version: int = SNAPSHOT_VERSION
    next_id: int | None = None
    tasks: list[TaskRecord] = Field(default_factory=list)
    views: list[View] = Field(default_factory=list)
    active_view_name: str | None = None
