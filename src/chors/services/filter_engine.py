"""Filter engine - projects the task forest through a view.

The projection is a pre-order flattening of the filtered forest. A task is
kept when it matches the view or when any of its descendants is kept, so a
deep match never loses its context. Siblings are reordered by the view's
sort key with a stable sort, so ties keep their manual order.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from chors.models.task import TASK_STATUSES, Task, TaskId
from chors.models.view import SortKey, View
from chors.services.task_store import TaskStore


@dataclass(frozen=True)
class ViewEntry:
    """One row of a projection.

    Attributes:
        task_id: The task shown on this row
        depth: Number of visible ancestors
        has_visible_children: Whether any child is also in the projection
        matched: False when the task is only shown as context for a match below it
    """

    task_id: TaskId
    depth: int
    has_visible_children: bool
    matched: bool = True


ViewList = list[ViewEntry]


def _date_key(value: datetime | None) -> tuple[bool, datetime]:
    return (value is None, value or datetime.min)


SORT_FUNCTIONS: dict[SortKey, Callable[[Task], Any] | None] = {
    "manual": None,
    "priority": lambda task: task.priority,
    "due": lambda task: _date_key(task.due),
    "scheduled": lambda task: _date_key(task.scheduled),
    "title": lambda task: task.title.casefold(),
    "status": lambda task: TASK_STATUSES.index(task.status),
}


def project(store: TaskStore, view: View, today: date | None = None) -> ViewList:
    """Apply a view to the store without mutating it.

    Args:
        store: The task store
        view: The view to apply
        today: Reference day for relative dates in the filter expression

    Returns:
        The ordered, depth-annotated list of visible tasks
    """
    predicate = view.compile(today)
    order = [task_id for task_id, _depth in store.walk()]
    tasks = {task_id: store.get(task_id) for task_id in order}

    matched: dict[TaskId, bool] = {}
    included: dict[TaskId, bool] = {}
    # Reversed pre-order visits every child before its parent
    for task_id in reversed(order):
        task = tasks[task_id]
        matched[task_id] = (view.show_completed or task.is_open) and predicate(task)
        included[task_id] = matched[task_id] or any(
            included[child_id] for child_id in task.children
        )

    sort_function = SORT_FUNCTIONS[view.sort_key]

    def visible_children(child_ids: list[TaskId]) -> list[TaskId]:
        kept = [child_id for child_id in child_ids if included[child_id]]
        if sort_function is not None:
            kept.sort(key=lambda child_id: sort_function(tasks[child_id]))
        return kept

    entries: ViewList = []
    stack = [(task_id, 0) for task_id in reversed(visible_children(store.roots()))]
    while stack:
        task_id, depth = stack.pop()
        children = visible_children(tasks[task_id].children)
        entries.append(ViewEntry(task_id, depth, bool(children), matched[task_id]))
        stack.extend((child_id, depth + 1) for child_id in reversed(children))
    return entries


def index_of(view_list: ViewList, task_id: TaskId | None) -> int | None:
    """Position of a task in a projection, None when it is not shown."""
    if task_id is None:
        return None
    for index, entry in enumerate(view_list):
        if entry.task_id == task_id:
            return index
    return None
