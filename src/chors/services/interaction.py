"""Interaction state machine - the modal controller between input and the core.

Every input arrives as a Command. ``dispatch`` matches it against the current
state; anything outside that state's legal set is rejected with a status
message. Core errors are reported the same way and leave the state as it
was, so a failed commit keeps the user's buffer.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import date
from typing import TypeVar

from chors.models.config_models import AppConfig
from chors.models.edit_buffer import EditBuffer
from chors.models.exceptions import ChorsError, InvalidStateError, ValidationFailedError
from chors.models.interaction import (
    ActivateView,
    AddTask,
    BufferCommand,
    CalendarDay,
    CalendarEditingState,
    CalendarMove,
    CalendarState,
    CalendarToday,
    Cancel,
    CancelTask,
    Command,
    Commit,
    ConfirmDeleteState,
    CursorBottom,
    CursorTop,
    CycleSortKey,
    CycleView,
    DeleteSelectedView,
    EditingState,
    FilterEditState,
    Frame,
    FrameRow,
    HelpState,
    Indent,
    MoveCursor,
    MoveTask,
    NewTask,
    NormalState,
    OpenFilterEdit,
    OpenInList,
    OpenViewSelect,
    Outdent,
    Quit,
    Redo,
    RequestDelete,
    SetPriority,
    ShowHelp,
    StartEdit,
    State,
    StatusMessage,
    SwitchField,
    ToggleCalendar,
    ToggleDone,
    ToggleShowCompleted,
    Undo,
    ViewSelectState,
)
from chors.models.snapshot import Snapshot
from chors.models.task import TaskId
from chors.models.view import ViewDraft, build_view
from chors.services.calendar_projector import CalendarCursor, month_grid, project_calendar
from chors.services.filter_engine import ViewList, index_of
from chors.services.history_service import History
from chors.services.storage_service import build_snapshot
from chors.services.task_store import TaskStore
from chors.services.view_manager import ViewManager
from chors.utils.dates import format_date, parse_date_input
from chors.utils.logger import get_logger

T = TypeVar("T")

_DRAFT_FIELDS = {"name": "name", "expression": "predicate_spec"}


def _step(index: int, step: int, length: int, wrap: bool) -> int:
    if wrap:
        return (index + step) % length
    return max(0, min(index + step, length - 1))


def _plural(count: int, noun: str = "task") -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


class InteractionMachine:
    """Owns the session: store, views, history, mode and cursors."""

    def __init__(
        self,
        store: TaskStore,
        views: ViewManager,
        config: AppConfig | None = None,
        *,
        today: Callable[[], date] = date.today,
    ):
        self.config = config or AppConfig()
        self.store = store
        self.views = views
        self.history = History(self.config.history.max_entries)
        self.today = today

        self.state: State = NormalState()
        self.view_list: ViewList = []
        self.cursor: int | None = None
        self.status: StatusMessage | None = None
        self.dirty = False
        self.quit_requested = False

        self._reproject()

    # Queries

    @property
    def mode(self) -> str:
        return self.state.mode

    @property
    def selected_id(self) -> TaskId | None:
        if self.cursor is None:
            return None
        return self.view_list[self.cursor].task_id

    def snapshot(self) -> Snapshot:
        return build_snapshot(self.store, self.views)

    def mark_saved(self) -> None:
        self.dirty = False

    def calendar_task_ids(self, day: date) -> list[TaskId]:
        placed = project_calendar(
            self.store, day, day, include_completed=self.config.ui.calendar_show_completed
        )
        return placed.get(day, [])

    def frame(self) -> Frame:
        """Read-only copy of everything the renderer needs."""
        rows = tuple(
            FrameRow(
                task=self.store.require(entry.task_id),
                depth=entry.depth,
                has_visible_children=entry.has_visible_children,
                matched=entry.matched,
            )
            for entry in self.view_list
        )

        calendar: tuple[tuple[CalendarDay, ...], ...] = ()
        calendar_tasks = ()
        day = self._calendar_day()
        if day is not None:
            grid = month_grid(
                self.store,
                day.year,
                day.month,
                week_starts_on=self.config.ui.week_starts_on,
                include_completed=self.config.ui.calendar_show_completed,
            )
            calendar = tuple(
                tuple(
                    CalendarDay(
                        cell.day,
                        tuple(self.store.require(task_id) for task_id in cell.task_ids),
                        cell.in_month,
                    )
                    for cell in week
                )
                for week in grid
            )
            calendar_tasks = tuple(self.store.require(task_id) for task_id in self.calendar_task_ids(day))

        return Frame(
            state=self.state,
            view_name=self.views.active_view_name,
            view_names=tuple(self.views.names()),
            rows=rows,
            cursor=self.cursor,
            status=self.status,
            calendar=calendar,
            calendar_tasks=calendar_tasks,
            can_undo=self.history.can_undo,
            can_redo=self.history.can_redo,
            dirty=self.dirty,
        )

    # Dispatch

    def dispatch(self, command: Command) -> StatusMessage | None:
        """Apply one command. Returns the status message it produced, if any."""
        logger = get_logger("interaction")
        self.status = None
        before = self.state.mode
        try:
            self._handle(command)
        except ChorsError as e:
            logger.info("command %s rejected in %s mode: %s", type(command).__name__, before, e)
            self.report(str(e), "error")
        else:
            if self.state.mode != before:
                logger.debug("mode %s -> %s", before, self.state.mode)
        return self.status

    def _handle(self, command: Command) -> None:
        state = self.state
        match state, command:
            # Shared text editing
            case (EditingState() | FilterEditState() | CalendarEditingState()), BufferCommand():
                self.state = replace(state, buffer=command.apply(state.buffer))

            # Help overlay
            case HelpState(previous=previous), (ShowHelp() | Cancel() | Commit()):
                self.state = previous
            case (NormalState() | CalendarState()), ShowHelp():
                self.state = HelpState(previous=state)

            # Session
            case (NormalState() | CalendarState()), Undo():
                self._restore(*self.history.undo(self.store), verb="Undid")
            case (NormalState() | CalendarState()), Redo():
                self._restore(*self.history.redo(self.store), verb="Redid")
            case (NormalState() | CalendarState()), Quit():
                self.quit_requested = True

            # Normal mode
            case NormalState(), MoveCursor(step=step):
                if self.cursor is not None:
                    self.cursor = _step(
                        self.cursor, step, len(self.view_list), self.config.ui.wrap_navigation
                    )
            case NormalState(), CursorTop():
                if self.cursor is not None:
                    self.cursor = 0
            case NormalState(), CursorBottom():
                if self.cursor is not None:
                    self.cursor = len(self.view_list) - 1
            case NormalState(), StartEdit(field=field):
                task = self.store.require(self._require_selection())
                self.state = EditingState(task.id, field, EditBuffer.prefilled(getattr(task, field)))
            case NormalState(), AddTask(as_child=as_child):
                self.state = EditingState(self._new_task_slot(as_child), "title", EditBuffer())
            case NormalState(), ToggleDone():
                task = self.store.require(self._require_selection())
                status = "open" if task.status == "done" else "done"
                self._change_status(task.id, status)
            case NormalState(), CancelTask():
                task = self.store.require(self._require_selection())
                status = "open" if task.status == "cancelled" else "cancelled"
                self._change_status(task.id, status)
            case NormalState(), SetPriority(priority=priority):
                task_id = self._require_selection()
                self._mutate(
                    "Set priority",
                    lambda: self.store.update_fields(task_id, {"priority": priority}),
                )
                self._reproject(keep=task_id)
            case NormalState(), MoveTask(step=step):
                task_id = self._require_selection()
                move = self.store.move_up if step < 0 else self.store.move_down
                self._mutate("Move task", lambda: move(task_id))
                self._reproject(keep=task_id)
            case NormalState(), Indent():
                task_id = self._require_selection()
                self._mutate("Indent task", lambda: self.store.indent(task_id))
                self._reproject(keep=task_id)
            case NormalState(), Outdent():
                task_id = self._require_selection()
                self._mutate("Outdent task", lambda: self.store.outdent(task_id))
                self._reproject(keep=task_id)
            case NormalState(), RequestDelete():
                task_id = self._require_selection()
                count = self.store.deletion_count(task_id)
                if self.config.ui.confirm_delete:
                    self.state = ConfirmDeleteState(task_id, count)
                    self.report(f"Delete {_plural(count)}? (y/n)")
                else:
                    self._delete(task_id)
            case NormalState(), OpenFilterEdit(new=new):
                draft = ViewDraft() if new else ViewDraft.from_view(self.views.active_view)
                self.state = FilterEditState(
                    draft, "expression", EditBuffer.prefilled(draft.predicate_spec)
                )
            case NormalState(), OpenViewSelect():
                self.state = ViewSelectState(self.views.names().index(self.views.active_view_name))
            case NormalState(), CycleView(step=step):
                self._activate(self.views.next_view_name(step))
            case NormalState(), ActivateView(name=name):
                self._activate(name)
            case NormalState(), ToggleCalendar():
                self.state = CalendarState(self._initial_calendar_day())

            # Editing
            case EditingState(), Commit():
                self._commit_edit(state)
                self.state = NormalState()
            case EditingState(), Cancel():
                self.state = NormalState()

            # Confirm delete
            case ConfirmDeleteState(task_id=task_id), Commit():
                self._delete(task_id)
                self.state = NormalState()
            case ConfirmDeleteState(), Cancel():
                self.state = NormalState()
                self.report("Delete cancelled")

            # Filter edit
            case FilterEditState(), SwitchField():
                draft = self._synced_draft(state)
                focus = "name" if state.focus == "expression" else "expression"
                text = draft.name if focus == "name" else draft.predicate_spec
                self.state = FilterEditState(draft, focus, EditBuffer.prefilled(text))
            case FilterEditState(), CycleSortKey():
                self.state = replace(state, draft=state.draft.next_sort_key())
            case FilterEditState(), ToggleShowCompleted():
                self.state = replace(state, draft=state.draft.toggle_show_completed())
            case FilterEditState(), Commit():
                draft = self._synced_draft(state)
                fields = build_view(**draft.model_dump(exclude={"original_name"})).model_dump()
                if draft.original_name in self.views and draft.original_name != fields["name"]:
                    self.views.rename_view(draft.original_name, fields["name"])
                view = self.views.save_view(fields["name"], fields)
                self.dirty = True
                self._activate(view.name)
                self.state = NormalState()
                self.report(f"Saved view '{view.name}'")
            case FilterEditState(), Cancel():
                self.state = NormalState()

            # View select
            case ViewSelectState(index=index), MoveCursor(step=step):
                self.state = ViewSelectState(_step(index, step, len(self.views), True))
            case ViewSelectState(index=index), Commit():
                self._activate(self.views.names()[index])
                self.state = NormalState()
            case ViewSelectState(index=index), DeleteSelectedView():
                name = self.views.names()[index]
                self.views.delete_view(name)
                self.dirty = True
                self.state = ViewSelectState(min(index, len(self.views) - 1))
                self.report(f"Deleted view '{name}'")
            case ViewSelectState(), Cancel():
                self.state = NormalState()

            # Calendar
            case CalendarState(day=day), CalendarMove(amount=amount, unit=unit):
                self.state = CalendarState(CalendarCursor(day).moved(amount, unit).day)
            case CalendarState(), CalendarToday():
                self.state = CalendarState(self.today())
            case CalendarState(day=day, index=index), MoveCursor(step=step):
                task_ids = self.calendar_task_ids(day)
                if task_ids:
                    self.state = CalendarState(day, _step(index, step, len(task_ids), True))
            case CalendarState(day=day, index=index), StartEdit():
                task = self.store.require(self._calendar_selection(day, index))
                current = task.scheduled or task.due
                text = current.date().isoformat() if current else ""
                self.state = CalendarEditingState(day, index, task.id, EditBuffer.prefilled(text))
            case CalendarState(day=day, index=index), OpenInList():
                task_id = self._calendar_selection(day, index)
                self.state = NormalState()
                position = index_of(self.view_list, task_id)
                if position is None:
                    self.report("Task is hidden by the current view", "error")
                else:
                    self.cursor = position
            case CalendarState(), (ToggleCalendar() | Cancel()):
                self.state = NormalState()

            # Calendar date edit
            case CalendarEditingState(), Commit():
                self._commit_schedule(state)
            case CalendarEditingState(day=day, index=index), Cancel():
                self.state = CalendarState(day, index)

            case _:
                raise InvalidStateError(
                    f"{type(command).__name__} is not available in {state.mode} mode"
                )

    # Helpers

    def report(self, text: str, level: str = "info") -> None:
        """Set the transient status line message."""
        self.status = StatusMessage(text, level)

    def _require_selection(self) -> TaskId:
        task_id = self.selected_id
        if task_id is None:
            raise InvalidStateError("No task selected")
        return task_id

    def _mutate(self, label: str, operation: Callable[[], T]) -> T:
        """Run a store mutation and record the previous store for undo."""
        before = self.store.clone()
        result = operation()
        self.history.push(before, label)
        self.dirty = True
        get_logger("interaction").debug("history push: %s", label)
        return result

    def _reproject(self, keep: TaskId | None = None, fallback: int | None = None) -> None:
        """Recompute the view list and clamp the cursor into it.

        The cursor follows ``keep`` when that task is still visible, otherwise
        it stays at ``fallback`` (clamped), otherwise it goes to the top.
        """
        self.view_list = self.views.project(self.store, self.today())
        if not self.view_list:
            self.cursor = None
            return
        position = index_of(self.view_list, keep)
        if position is None:
            position = fallback if fallback is not None else 0
        self.cursor = max(0, min(position, len(self.view_list) - 1))

    def _restore(self, store: TaskStore, label: str, *, verb: str) -> None:
        selected = self.selected_id
        self.store = store
        self.dirty = True
        self._reproject(keep=selected, fallback=self.cursor)
        if isinstance(self.state, CalendarState):
            task_ids = self.calendar_task_ids(self.state.day)
            self.state = CalendarState(self.state.day, min(self.state.index, max(len(task_ids) - 1, 0)))
        self.report(f"{verb}: {label}")

    def _activate(self, name: str) -> None:
        selected = self.selected_id
        self.views.activate_view(name)
        self.dirty = True
        self._reproject(keep=selected)

    def _new_task_slot(self, as_child: bool) -> NewTask:
        selected = self.selected_id
        if as_child:
            if selected is None:
                raise InvalidStateError("No task selected")
            return NewTask(parent_id=selected)
        if selected is None:
            return NewTask(parent_id=None)
        return NewTask(
            parent_id=self.store.parent_of(selected),
            index=self.store.index_in_parent(selected) + 1,
        )

    def _commit_edit(self, state: EditingState) -> None:
        text = state.buffer.text
        match state.target:
            case NewTask(parent_id=parent_id, index=index):
                task_id = self._mutate(
                    "Add task", lambda: self.store.create(parent_id, text, index=index)
                )
                self._reproject(keep=task_id, fallback=self.cursor)
                if index_of(self.view_list, task_id) is None:
                    self.report("Added task (hidden by the current view)")
                else:
                    self.report("Added task")
            case task_id:
                label = "Edit title" if state.field == "title" else "Edit description"
                self._mutate(label, lambda: self.store.update_fields(task_id, {state.field: text}))
                self._reproject(keep=task_id, fallback=self.cursor)

    def _change_status(self, task_id: TaskId, status: str) -> None:
        changed = self._mutate(
            f"Mark {status}", lambda: self.store.set_status(task_id, status)
        )
        self._reproject(keep=task_id, fallback=self.cursor)
        self.report(f"Marked {_plural(changed)} {status}")

    def _delete(self, task_id: TaskId) -> None:
        removed = self._mutate("Delete task", lambda: self.store.delete(task_id))
        self._reproject(fallback=self.cursor)
        self.report(f"Deleted {_plural(removed)}")

    def _synced_draft(self, state: FilterEditState) -> ViewDraft:
        return state.draft.model_copy(update={_DRAFT_FIELDS[state.focus]: state.buffer.text})

    def _calendar_day(self) -> date | None:
        match self.state:
            case CalendarState(day=day) | CalendarEditingState(day=day):
                return day
            case HelpState(previous=CalendarState(day=day)):
                return day
        return None

    def _initial_calendar_day(self) -> date:
        if self.selected_id is not None:
            day = self.store.require(self.selected_id).placement_date
            if day is not None:
                return day
        return self.today()

    def _calendar_selection(self, day: date, index: int) -> TaskId:
        task_ids = self.calendar_task_ids(day)
        if not task_ids:
            raise InvalidStateError(f"No tasks on {format_date(day)}")
        return task_ids[min(index, len(task_ids) - 1)]

    def _commit_schedule(self, state: CalendarEditingState) -> None:
        try:
            when = parse_date_input(state.buffer.text, self.today())
        except ValueError as e:
            raise ValidationFailedError(str(e)) from e

        self._mutate("Reschedule task", lambda: self.store.set_schedule(state.task_id, when))
        self._reproject(keep=self.selected_id, fallback=self.cursor)

        task = self.store.require(state.task_id)
        day = task.placement_date or state.day
        task_ids = self.calendar_task_ids(day)
        if state.task_id in task_ids:
            index = task_ids.index(state.task_id)
        else:
            index = min(state.index, max(len(task_ids) - 1, 0))
        self.state = CalendarState(day, index)
        if when is None:
            self.report("Schedule cleared")
        else:
            self.report(f"Scheduled for {format_date(when)}")
