"""Chors domain models.

Pydantic models for tasks, views, snapshots and configuration, plus the
small immutable value types the interaction layer passes around.
"""

from .config_models import AppConfig
from .edit_buffer import EditBuffer
from .exceptions import (
    ChorsError,
    CycleDetectedError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationFailedError,
)
from .snapshot import Snapshot, TaskRecord
from .task import Task, TaskPatch, TaskStatus
from .view import View, ViewDraft

__all__ = [
    # Tasks
    "Task",
    "TaskPatch",
    "TaskStatus",
    # Views
    "View",
    "ViewDraft",
    # Persistence
    "Snapshot",
    "TaskRecord",
    # Editing
    "EditBuffer",
    # Config
    "AppConfig",
    # Errors
    "ChorsError",
    "NotFoundError",
    "CycleDetectedError",
    "InvalidStateError",
    "ValidationFailedError",
    "StorageError",
]
