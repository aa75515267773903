"""Interaction states, commands and the render frame.

States and commands are small frozen dataclasses; the interaction service
matches each (state, command) pair explicitly and rejects everything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import ClassVar, Literal

from chors.models.edit_buffer import EditBuffer
from chors.models.task import Task, TaskId
from chors.models.view import ViewDraft

Mode = Literal[
    "normal",
    "editing",
    "filter_edit",
    "view_select",
    "confirm_delete",
    "help",
    "calendar",
    "calendar_editing",
]
EditField = Literal["title", "description"]
FilterField = Literal["name", "expression"]
StatusLevel = Literal["info", "error"]


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NewTask:
    """Where a task being composed will be inserted on commit."""

    parent_id: TaskId | None
    index: int | None = None


@dataclass(frozen=True)
class NormalState:
    mode: ClassVar[Mode] = "normal"


@dataclass(frozen=True)
class EditingState:
    mode: ClassVar[Mode] = "editing"

    target: TaskId | NewTask
    field: EditField
    buffer: EditBuffer


@dataclass(frozen=True)
class FilterEditState:
    mode: ClassVar[Mode] = "filter_edit"

    draft: ViewDraft
    focus: FilterField
    buffer: EditBuffer


@dataclass(frozen=True)
class ViewSelectState:
    mode: ClassVar[Mode] = "view_select"

    index: int = 0


@dataclass(frozen=True)
class ConfirmDeleteState:
    mode: ClassVar[Mode] = "confirm_delete"

    task_id: TaskId
    count: int


@dataclass(frozen=True)
class CalendarState:
    mode: ClassVar[Mode] = "calendar"

    day: date
    index: int = 0


@dataclass(frozen=True)
class CalendarEditingState:
    mode: ClassVar[Mode] = "calendar_editing"

    day: date
    index: int
    task_id: TaskId
    buffer: EditBuffer


@dataclass(frozen=True)
class HelpState:
    mode: ClassVar[Mode] = "help"

    previous: State


State = (
    NormalState
    | EditingState
    | FilterEditState
    | ViewSelectState
    | ConfirmDeleteState
    | CalendarState
    | CalendarEditingState
    | HelpState
)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class Command:
    """Base class for everything the UI can ask the interaction service to do."""


# Navigation


@dataclass(frozen=True)
class MoveCursor(Command):
    step: int = 1


@dataclass(frozen=True)
class CursorTop(Command):
    pass


@dataclass(frozen=True)
class CursorBottom(Command):
    pass


# Task operations


@dataclass(frozen=True)
class StartEdit(Command):
    field: EditField = "title"


@dataclass(frozen=True)
class AddTask(Command):
    as_child: bool = False


@dataclass(frozen=True)
class ToggleDone(Command):
    pass


@dataclass(frozen=True)
class CancelTask(Command):
    pass


@dataclass(frozen=True)
class SetPriority(Command):
    priority: int


@dataclass(frozen=True)
class MoveTask(Command):
    step: int


@dataclass(frozen=True)
class Indent(Command):
    pass


@dataclass(frozen=True)
class Outdent(Command):
    pass


@dataclass(frozen=True)
class RequestDelete(Command):
    pass


# Views


@dataclass(frozen=True)
class OpenFilterEdit(Command):
    new: bool = False


@dataclass(frozen=True)
class SwitchField(Command):
    pass


@dataclass(frozen=True)
class CycleSortKey(Command):
    pass


@dataclass(frozen=True)
class ToggleShowCompleted(Command):
    pass


@dataclass(frozen=True)
class OpenViewSelect(Command):
    pass


@dataclass(frozen=True)
class DeleteSelectedView(Command):
    pass


@dataclass(frozen=True)
class CycleView(Command):
    step: int = 1


@dataclass(frozen=True)
class ActivateView(Command):
    name: str


# Calendar


@dataclass(frozen=True)
class ToggleCalendar(Command):
    pass


@dataclass(frozen=True)
class CalendarMove(Command):
    amount: int
    unit: Literal["d", "w", "m"] = "d"


@dataclass(frozen=True)
class CalendarToday(Command):
    pass


@dataclass(frozen=True)
class OpenInList(Command):
    pass


# Session


@dataclass(frozen=True)
class Undo(Command):
    pass


@dataclass(frozen=True)
class Redo(Command):
    pass


@dataclass(frozen=True)
class ShowHelp(Command):
    pass


@dataclass(frozen=True)
class Quit(Command):
    pass


@dataclass(frozen=True)
class Commit(Command):
    pass


@dataclass(frozen=True)
class Cancel(Command):
    pass


# Buffer editing


class BufferCommand(Command):
    """Command that only changes the edit buffer of a text state."""

    def apply(self, buffer: EditBuffer) -> EditBuffer:
        raise NotImplementedError


@dataclass(frozen=True)
class InsertText(BufferCommand):
    text: str

    def apply(self, buffer: EditBuffer) -> EditBuffer:
        return buffer.insert(self.text)


@dataclass(frozen=True)
class Backspace(BufferCommand):
    def apply(self, buffer: EditBuffer) -> EditBuffer:
        return buffer.backspace()


@dataclass(frozen=True)
class DeleteForward(BufferCommand):
    def apply(self, buffer: EditBuffer) -> EditBuffer:
        return buffer.delete_forward()


@dataclass(frozen=True)
class DeleteWord(BufferCommand):
    def apply(self, buffer: EditBuffer) -> EditBuffer:
        return buffer.delete_word()


@dataclass(frozen=True)
class BufferLeft(BufferCommand):
    by_word: bool = False

    def apply(self, buffer: EditBuffer) -> EditBuffer:
        return buffer.word_left() if self.by_word else buffer.left()


@dataclass(frozen=True)
class BufferRight(BufferCommand):
    by_word: bool = False

    def apply(self, buffer: EditBuffer) -> EditBuffer:
        return buffer.word_right() if self.by_word else buffer.right()


@dataclass(frozen=True)
class BufferHome(BufferCommand):
    def apply(self, buffer: EditBuffer) -> EditBuffer:
        return buffer.home()


@dataclass(frozen=True)
class BufferEnd(BufferCommand):
    def apply(self, buffer: EditBuffer) -> EditBuffer:
        return buffer.end()


# ---------------------------------------------------------------------------
# Frame
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatusMessage:
    text: str
    level: StatusLevel = "info"


@dataclass(frozen=True)
class FrameRow:
    task: Task
    depth: int
    has_visible_children: bool
    matched: bool


@dataclass(frozen=True)
class CalendarDay:
    day: date
    tasks: tuple[Task, ...]
    in_month: bool


@dataclass(frozen=True)
class Frame:
    """Everything the renderer needs for one screen, as read-only copies."""

    state: State
    view_name: str
    view_names: tuple[str, ...]
    rows: tuple[FrameRow, ...]
    cursor: int | None
    status: StatusMessage | None = None
    calendar: tuple[tuple[CalendarDay, ...], ...] = ()
    calendar_tasks: tuple[Task, ...] = ()
    can_undo: bool = False
    can_redo: bool = False
    dirty: bool = False

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def buffer(self) -> EditBuffer | None:
        return getattr(self.state, "buffer", None)

    @property
    def selected(self) -> FrameRow | None:
        if self.cursor is None:
            return None
        return self.rows[self.cursor]
