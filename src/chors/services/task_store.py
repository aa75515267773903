"""Task store - owns the task forest.

Tasks live in an id-indexed table; parent/child links are ids, never object
references, so views and the interaction cursor survive any mutation. Every
mutating method validates first and changes state last, so a failed call
leaves the store untouched.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from datetime import date, datetime
from typing import Any, Literal

from pydantic import ValidationError

from chors.models.exceptions import (
    CycleDetectedError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from chors.models.snapshot import TaskRecord
from chors.models.task import TASK_STATUSES, Task, TaskId, TaskPatch, TaskStatus
from chors.utils.logger import get_logger

DeletePolicy = Literal["cascade", "reparent"]


def _now() -> datetime:
    return datetime.now().astimezone()


def _coerce_patch(patch: TaskPatch | Mapping[str, Any]) -> TaskPatch:
    if isinstance(patch, TaskPatch):
        return patch
    try:
        return TaskPatch.model_validate(dict(patch))
    except ValidationError as e:
        messages = "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
        raise ValidationFailedError(messages) from e


class TaskStore:
    """In-memory task forest keyed by stable integer ids."""

    def __init__(
        self,
        *,
        delete_policy: DeletePolicy = "cascade",
        cascade_status: bool = True,
    ):
        """Initialize an empty store.

        Args:
            delete_policy: "cascade" removes a deleted task's subtree,
                "reparent" hands its children to the deleted task's parent
            cascade_status: Whether status changes apply to the whole subtree
        """
        self.delete_policy: DeletePolicy = delete_policy
        self.cascade_status = cascade_status
        self._tasks: dict[TaskId, Task] = {}
        self._roots: list[TaskId] = []
        self._next_id: TaskId = 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __iter__(self) -> Iterator[TaskId]:
        for task_id, _depth in self.walk():
            yield task_id

    @property
    def next_id(self) -> TaskId:
        return self._next_id

    def get(self, task_id: TaskId) -> Task | None:
        """Return a copy of the task, or None when it does not exist."""
        task = self._tasks.get(task_id)
        return task.model_copy(deep=True) if task is not None else None

    def require(self, task_id: TaskId) -> Task:
        """Like get(), but raises NotFoundError for a missing task."""
        return self._require(task_id).model_copy(deep=True)

    def roots(self) -> list[TaskId]:
        return list(self._roots)

    def children_of(self, task_id: TaskId | None) -> list[TaskId]:
        """Ordered child ids of a task; ``None`` lists the roots."""
        return list(self._siblings(task_id))

    def parent_of(self, task_id: TaskId) -> TaskId | None:
        return self._require(task_id).parent_id

    def index_in_parent(self, task_id: TaskId) -> int:
        task = self._require(task_id)
        return self._siblings(task.parent_id).index(task_id)

    def descendants(self, task_id: TaskId) -> list[TaskId]:
        """All descendants of a task in pre-order, excluding the task itself."""
        result: list[TaskId] = []
        stack = list(reversed(self._require(task_id).children))
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(self._tasks[current].children))
        return result

    def ancestors(self, task_id: TaskId) -> list[TaskId]:
        """Ancestors from the parent up to the root."""
        result: list[TaskId] = []
        parent_id = self._require(task_id).parent_id
        while parent_id is not None:
            result.append(parent_id)
            parent_id = self._tasks[parent_id].parent_id
        return result

    def walk(self, parent_id: TaskId | None = None) -> Iterator[tuple[TaskId, int]]:
        """Pre-order traversal yielding ``(task_id, depth)``."""
        stack = [(child, 0) for child in reversed(self._siblings(parent_id))]
        while stack:
            current, depth = stack.pop()
            yield current, depth
            stack.extend(
                (child, depth + 1) for child in reversed(self._tasks[current].children)
            )

    def subtree_size(self, task_id: TaskId) -> int:
        """Number of tasks in the subtree rooted at ``task_id``."""
        return 1 + len(self.descendants(task_id))

    def deletion_count(self, task_id: TaskId) -> int:
        """How many tasks delete() would remove under the current policy."""
        if self.delete_policy == "reparent":
            self._require(task_id)
            return 1
        return self.subtree_size(task_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        parent_id: TaskId | None,
        title: str,
        *,
        index: int | None = None,
        **fields: Any,
    ) -> TaskId:
        """Create a task.

        Args:
            parent_id: Parent task, or None for a new root
            title: Task title (must not be blank)
            index: Sibling position to insert at; appends when None
            **fields: Optional description, due, scheduled, priority

        Returns:
            The new task's id

        Raises:
            NotFoundError: If the parent does not exist
            ValidationFailedError: If the title or a field is invalid
        """
        patch = _coerce_patch({"title": title, **fields})
        if patch.title is None:
            raise ValidationFailedError("Title cannot be empty")
        if parent_id is not None:
            self._require(parent_id)

        task_id = self._next_id
        values = {key: value for key, value in patch.changes().items() if value is not None}
        task = Task(id=task_id, parent_id=parent_id, **values)

        siblings = self._siblings(parent_id)
        position = len(siblings) if index is None else max(0, min(index, len(siblings)))
        siblings.insert(position, task_id)
        self._tasks[task_id] = task
        self._next_id += 1

        get_logger("store").debug("task created: %s (parent=%s)", task_id, parent_id)
        return task_id

    def update_fields(self, task_id: TaskId, patch: TaskPatch | Mapping[str, Any]) -> Task:
        """Apply a partial update and return a copy of the updated task."""
        task = self._require(task_id)
        changes = _coerce_patch(patch).changes()
        if "title" in changes and changes["title"] is None:
            raise ValidationFailedError("Title cannot be empty")
        if "priority" in changes and changes["priority"] is None:
            raise ValidationFailedError("Priority cannot be cleared")

        for field, value in changes.items():
            setattr(task, field, value)
        if changes:
            task.updated_at = _now()
            get_logger("store").debug("task updated: %s %s", task_id, sorted(changes))
        return task.model_copy(deep=True)

    def set_schedule(self, task_id: TaskId, when: date | datetime | None) -> Task:
        """Set or clear the scheduled date of a task."""
        return self.update_fields(task_id, TaskPatch(scheduled=when))

    def set_status(
        self,
        task_id: TaskId,
        status: TaskStatus,
        *,
        cascade: bool | None = None,
    ) -> int:
        """Change the status of a task (and, when cascading, its subtree).

        Returns:
            Number of tasks whose status actually changed
        """
        if status not in TASK_STATUSES:
            raise ValidationFailedError(f"Unknown status: {status!r}")
        self._require(task_id)
        if cascade is None:
            cascade = self.cascade_status

        targets = [task_id, *self.descendants(task_id)] if cascade else [task_id]
        now = _now()
        changed = 0
        for target_id in targets:
            task = self._tasks[target_id]
            if task.status == status:
                continue
            task.status = status
            task.completed_at = now if status == "done" else None
            task.updated_at = now
            changed += 1

        get_logger("store").debug("task status: %s -> %s (%d changed)", task_id, status, changed)
        return changed

    def move_subtree(
        self,
        task_id: TaskId,
        new_parent_id: TaskId | None,
        new_index: int | None = None,
    ) -> None:
        """Move a task and its subtree under a new parent.

        ``new_index`` is the position among the new siblings once the task
        has been taken out of its old place; None appends.

        Raises:
            NotFoundError: If either task does not exist
            CycleDetectedError: If the new parent is the task or one of its descendants
        """
        task = self._require(task_id)
        if new_parent_id is not None:
            self._require(new_parent_id)
            if new_parent_id == task_id or new_parent_id in set(self.descendants(task_id)):
                raise CycleDetectedError(
                    f"Cannot move task {task_id} under its own subtree ({new_parent_id})"
                )

        self._siblings(task.parent_id).remove(task_id)
        siblings = self._siblings(new_parent_id)
        position = len(siblings) if new_index is None else max(0, min(new_index, len(siblings)))
        siblings.insert(position, task_id)
        task.parent_id = new_parent_id
        task.updated_at = _now()

        get_logger("store").debug(
            "task moved: %s -> parent=%s index=%s", task_id, new_parent_id, position
        )

    def delete(self, task_id: TaskId) -> int:
        """Delete a task according to the delete policy.

        Returns:
            Number of tasks removed from the store
        """
        task = self._require(task_id)
        siblings = self._siblings(task.parent_id)
        position = siblings.index(task_id)

        if self.delete_policy == "reparent":
            siblings[position : position + 1] = task.children
            for child_id in task.children:
                self._tasks[child_id].parent_id = task.parent_id
            del self._tasks[task_id]
            removed = 1
        else:
            doomed = [task_id, *self.descendants(task_id)]
            del siblings[position]
            for doomed_id in doomed:
                del self._tasks[doomed_id]
            removed = len(doomed)

        get_logger("store").info("task deleted: %s (%d removed, %s)", task_id, removed, self.delete_policy)
        return removed

    # Sibling reordering

    def move_up(self, task_id: TaskId) -> None:
        position = self.index_in_parent(task_id)
        if position == 0:
            raise InvalidStateError("Task is already first among its siblings")
        self.move_subtree(task_id, self.parent_of(task_id), position - 1)

    def move_down(self, task_id: TaskId) -> None:
        position = self.index_in_parent(task_id)
        parent_id = self.parent_of(task_id)
        if position == len(self._siblings(parent_id)) - 1:
            raise InvalidStateError("Task is already last among its siblings")
        self.move_subtree(task_id, parent_id, position + 1)

    def indent(self, task_id: TaskId) -> None:
        """Make a task the last child of its previous sibling."""
        position = self.index_in_parent(task_id)
        if position == 0:
            raise InvalidStateError("No previous sibling to indent under")
        new_parent_id = self._siblings(self.parent_of(task_id))[position - 1]
        self.move_subtree(task_id, new_parent_id)

    def outdent(self, task_id: TaskId) -> None:
        """Make a task the next sibling of its parent."""
        parent_id = self.parent_of(task_id)
        if parent_id is None:
            raise InvalidStateError("Task is already at the top level")
        grandparent_id = self.parent_of(parent_id)
        self.move_subtree(task_id, grandparent_id, self.index_in_parent(parent_id) + 1)

    # ------------------------------------------------------------------
    # Copies and records
    # ------------------------------------------------------------------

    def clone(self) -> TaskStore:
        """Deep copy of the store (used for undo history)."""
        copy = TaskStore(delete_policy=self.delete_policy, cascade_status=self.cascade_status)
        copy._tasks = {task_id: task.model_copy(deep=True) for task_id, task in self._tasks.items()}
        copy._roots = list(self._roots)
        copy._next_id = self._next_id
        return copy

    def retire_ids_below(self, next_id: TaskId) -> None:
        """Never hand out an id lower than ``next_id`` from this store."""
        self._next_id = max(self._next_id, next_id)

    def to_records(self) -> list[TaskRecord]:
        """Flatten the forest into records in pre-order."""
        records = []
        for task_id in self:
            task = self._tasks[task_id]
            records.append(
                TaskRecord(
                    id=task.id,
                    parent_id=task.parent_id,
                    title=task.title,
                    description=task.description,
                    status=task.status,
                    due=task.due,
                    scheduled=task.scheduled,
                    priority=task.priority,
                    children_order=list(task.children),
                    created_at=task.created_at,
                    updated_at=task.updated_at,
                    completed_at=task.completed_at,
                )
            )
        return records

    @classmethod
    def from_records(
        cls,
        records: Iterable[TaskRecord],
        next_id: TaskId | None = None,
        *,
        delete_policy: DeletePolicy = "cascade",
        cascade_status: bool = True,
    ) -> TaskStore:
        """Rebuild a store from records, checking every forest invariant.

        Raises:
            ValidationFailedError: On duplicate ids, dangling parents or
                children, parent/children disagreement, cycles, blank titles
                or an id counter that would reuse an existing id
        """
        records = list(records)
        by_id: dict[TaskId, TaskRecord] = {}
        for record in records:
            if record.id in by_id:
                raise ValidationFailedError(f"Duplicate task id {record.id}")
            if record.id < 1:
                raise ValidationFailedError(f"Invalid task id {record.id}")
            if not record.title.strip():
                raise ValidationFailedError(f"Task {record.id} has an empty title")
            by_id[record.id] = record

        listed: set[TaskId] = set()
        for record in records:
            if record.parent_id is not None and record.parent_id not in by_id:
                raise ValidationFailedError(
                    f"Task {record.id} references missing parent {record.parent_id}"
                )
            for child_id in record.children_order:
                child = by_id.get(child_id)
                if child is None:
                    raise ValidationFailedError(
                        f"Task {record.id} lists missing child {child_id}"
                    )
                if child.parent_id != record.id:
                    raise ValidationFailedError(
                        f"Task {child_id} is listed under {record.id} "
                        f"but its parent is {child.parent_id}"
                    )
                if child_id in listed:
                    raise ValidationFailedError(f"Task {child_id} is listed twice")
                listed.add(child_id)

        for record in records:
            if record.parent_id is not None and record.id not in listed:
                raise ValidationFailedError(
                    f"Task {record.id} is missing from its parent's children"
                )

        store = cls(delete_policy=delete_policy, cascade_status=cascade_status)
        store._roots = [record.id for record in records if record.parent_id is None]

        # Tasks whose parent pointers form a loop are never reached from a root
        reachable: set[TaskId] = set()
        stack = list(store._roots)
        while stack:
            current = stack.pop()
            reachable.add(current)
            stack.extend(by_id[current].children_order)
        if len(reachable) != len(by_id):
            cyclic = sorted(set(by_id) - reachable)
            raise ValidationFailedError(f"Cycle in parent links involving tasks {cyclic}")

        highest = max(by_id, default=0)
        if next_id is None:
            next_id = highest + 1
        elif next_id <= highest:
            raise ValidationFailedError(
                f"Id counter {next_id} would reuse existing task id {highest}"
            )

        for record in records:
            fields = record.model_dump(exclude={"children_order"}, exclude_none=True)
            store._tasks[record.id] = Task(**fields, children=list(record.children_order))
        store._next_id = next_id
        return store

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, task_id: TaskId) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def _siblings(self, parent_id: TaskId | None) -> list[TaskId]:
        """The live child list of ``parent_id`` (the roots for None)."""
        if parent_id is None:
            return self._roots
        return self._require(parent_id).children
