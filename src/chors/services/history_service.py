"""In-session undo/redo for task store mutations.

History is kept in memory only; it does not survive a restart.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from chors.models.exceptions import InvalidStateError
from chors.services.task_store import TaskStore


@dataclass
class HistoryEntry:
    store: TaskStore
    label: str


class History:
    """Bounded undo/redo stacks of whole-store copies."""

    def __init__(self, max_entries: int = 100):
        self.undo_stack: deque[HistoryEntry] = deque(maxlen=max_entries)
        self.redo_stack: deque[HistoryEntry] = deque(maxlen=max_entries)

    @property
    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    def push(self, before: TaskStore, label: str) -> None:
        """Record the store as it was before a successful mutation."""
        self.undo_stack.append(HistoryEntry(before, label))
        self.redo_stack.clear()

    def undo(self, current: TaskStore) -> tuple[TaskStore, str]:
        """Return the previous store and the label of the undone action."""
        if not self.undo_stack:
            raise InvalidStateError("Nothing to undo")
        entry = self.undo_stack.pop()
        self.redo_stack.append(HistoryEntry(current.clone(), entry.label))
        entry.store.retire_ids_below(current.next_id)
        return entry.store, entry.label

    def redo(self, current: TaskStore) -> tuple[TaskStore, str]:
        """Return the next store and the label of the redone action."""
        if not self.redo_stack:
            raise InvalidStateError("Nothing to redo")
        entry = self.redo_stack.pop()
        self.undo_stack.append(HistoryEntry(current.clone(), entry.label))
        entry.store.retire_ids_below(current.next_id)
        return entry.store, entry.label
