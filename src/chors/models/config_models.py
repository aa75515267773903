"""Configuration models.

This module defines the settings read from ``config.json`` in the per-user
config directory. Every section has sensible defaults so an empty or missing
file is a valid configuration.
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class StoreConfig(BaseModel):
    """Task store behaviour."""

    delete_policy: Literal["cascade", "reparent"] = Field(
        default="cascade",
        description="Remove a deleted task's subtree, or hand its children to its parent",
    )
    cascade_status: bool = Field(
        default=True, description="Apply status changes to the whole subtree"
    )


class UIConfig(BaseModel):
    """Interactive UI configuration."""

    confirm_delete: bool = Field(default=True)
    wrap_navigation: bool = Field(default=True)
    week_starts_on: Literal["monday", "sunday"] = Field(default="monday")
    calendar_show_completed: bool = Field(default=True)


class HistoryConfig(BaseModel):
    """Undo/redo configuration."""

    max_entries: int = Field(default=100, ge=0)


class LoggingConfig(BaseModel):
    """Log file configuration."""

    level: str = Field(default="INFO")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class AppConfig(BaseModel):
    """Main Chors configuration"""

    task_file: str | None = Field(
        default=None, description="Task file used when --file is not given"
    )
    store: StoreConfig = Field(default_factory=StoreConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
