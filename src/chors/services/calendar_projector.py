"""Calendar projector - places dated tasks on a date grid.

A task sits on its scheduled date when it has one, otherwise on its due
date; undated tasks never appear. Within a day tasks are ordered by priority,
then by creation order (ids are handed out monotonically). The projector only
reads the store.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Literal

from chors.models.task import TaskId
from chors.services.task_store import TaskStore
from chors.utils.dates import shift

WeekStart = Literal["monday", "sunday"]


@dataclass(frozen=True)
class CalendarCell:
    """One day of the grid and the tasks placed on it."""

    day: date
    task_ids: tuple[TaskId, ...] = ()
    in_month: bool = True


def project_calendar(
    store: TaskStore,
    start: date,
    end: date,
    *,
    include_completed: bool = True,
) -> dict[date, list[TaskId]]:
    """Map each populated day in ``[start, end]`` to its ordered task ids."""
    placed: dict[date, list[tuple[int, TaskId]]] = {}
    for task_id in store:
        task = store.get(task_id)
        day = task.placement_date
        if day is None or not start <= day <= end:
            continue
        if not include_completed and not task.is_open:
            continue
        placed.setdefault(day, []).append((task.priority, task.id))

    return {day: [task_id for _priority, task_id in sorted(placed[day])] for day in sorted(placed)}


def month_grid(
    store: TaskStore,
    year: int,
    month: int,
    *,
    week_starts_on: WeekStart = "monday",
    include_completed: bool = True,
) -> list[list[CalendarCell]]:
    """Full weeks covering a month, each a list of seven cells.

    Days from the neighbouring months that fill the first and last week are
    included with ``in_month=False``.
    """
    first_weekday = calendar.MONDAY if week_starts_on == "monday" else calendar.SUNDAY
    weeks = calendar.Calendar(firstweekday=first_weekday).monthdatescalendar(year, month)
    placed = project_calendar(
        store, weeks[0][0], weeks[-1][-1], include_completed=include_completed
    )
    return [
        [CalendarCell(day, tuple(placed.get(day, ())), day.month == month) for day in week]
        for week in weeks
    ]


@dataclass(frozen=True)
class CalendarCursor:
    """The day highlighted in the calendar view."""

    day: date

    @classmethod
    def today(cls) -> CalendarCursor:
        return cls(date.today())

    def moved(self, amount: int, unit: str = "d") -> CalendarCursor:
        """Move by days (``d``), weeks (``w``) or months (``m``)."""
        return CalendarCursor(shift(self.day, amount, unit))

    @property
    def year(self) -> int:
        return self.day.year

    @property
    def month(self) -> int:
        return self.day.month
