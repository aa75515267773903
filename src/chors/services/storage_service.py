"""Storage service - reads and writes the task file.

The file always holds one complete snapshot; saves never write partial or
incremental data. Writes go to a temporary file in the same directory that
then replaces the target, so a crash mid-save leaves the old file intact.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from chors.models.config_models import AppConfig
from chors.models.exceptions import StorageError
from chors.models.snapshot import Snapshot
from chors.services.task_store import TaskStore
from chors.services.view_manager import ViewManager
from chors.utils.logger import get_logger


class StorageService:
    """Loads and saves snapshots at a fixed path."""

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def load(self) -> Snapshot:
        """Read the snapshot; a missing file yields an empty one.

        Raises:
            StorageError: If the file cannot be read or is not a valid snapshot
        """
        logger = get_logger("storage")
        if not self.path.exists():
            logger.info("no task file at %s, starting empty", self.path)
            return Snapshot()

        try:
            data = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("failed to read %s: %s", self.path, e)
            raise StorageError(f"Failed to read {self.path}: {e}") from e

        if not data.strip():
            return Snapshot()

        try:
            snapshot = Snapshot.model_validate_json(data)
        except ValidationError as e:
            logger.error("invalid task file %s: %s", self.path, e)
            raise StorageError(f"Invalid task file {self.path}: {e}") from e

        logger.info("loaded %d tasks from %s", len(snapshot.tasks), self.path)
        return snapshot

    def save(self, snapshot: Snapshot) -> None:
        """Atomically replace the file with ``snapshot``.

        Raises:
            StorageError: If the file cannot be written
        """
        logger = get_logger("storage")
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(snapshot.model_dump_json(indent=2))
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error("failed to save %s: %s", self.path, e)
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to save {self.path}: {e}") from e

        logger.info("saved %d tasks to %s", len(snapshot.tasks), self.path)


def build_snapshot(store: TaskStore, views: ViewManager) -> Snapshot:
    """Capture the complete state of a session."""
    return Snapshot(
        next_id=store.next_id,
        tasks=store.to_records(),
        views=views.views(),
        active_view_name=views.active_view_name,
    )


def restore_snapshot(
    snapshot: Snapshot, config: AppConfig | None = None
) -> tuple[TaskStore, ViewManager]:
    """Rebuild the store and view manager from a snapshot.

    Raises:
        ValidationFailedError: If the tasks do not form a valid forest or two
            views share a name
    """
    config = config or AppConfig()
    store = TaskStore.from_records(
        snapshot.tasks,
        snapshot.next_id,
        delete_policy=config.store.delete_policy,
        cascade_status=config.store.cascade_status,
    )
    views = ViewManager(snapshot.views, snapshot.active_view_name)
    return store, views
