"""Key bindings for each interaction mode.

Keys use Textual's key names (``"down"``, ``"ctrl+w"``, ``"shift+tab"``);
printable keys may also be matched by the character they produce, so ``"?"``
and ``"A"`` work whatever name the terminal driver reports for them.
"""

from __future__ import annotations

from dataclasses import dataclass

from chors.models.interaction import (
    AddTask,
    Backspace,
    BufferEnd,
    BufferHome,
    BufferLeft,
    BufferRight,
    CalendarMove,
    CalendarToday,
    Cancel,
    CancelTask,
    Command,
    Commit,
    CursorBottom,
    CursorTop,
    CycleSortKey,
    CycleView,
    DeleteForward,
    DeleteSelectedView,
    DeleteWord,
    Indent,
    InsertText,
    Mode,
    MoveCursor,
    MoveTask,
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
    SwitchField,
    ToggleCalendar,
    ToggleDone,
    ToggleShowCompleted,
    Undo,
)

SAVE_KEY = "ctrl+s"


@dataclass(frozen=True)
class KeyBinding:
    keys: tuple[str, ...]
    command: Command
    description: str


NORMAL_BINDINGS = [
    KeyBinding(("j", "down"), MoveCursor(1), "Next task"),
    KeyBinding(("k", "up"), MoveCursor(-1), "Previous task"),
    KeyBinding(("g", "home"), CursorTop(), "First task"),
    KeyBinding(("G", "end"), CursorBottom(), "Last task"),
    KeyBinding(("a",), AddTask(), "Add task below"),
    KeyBinding(("A",), AddTask(as_child=True), "Add subtask"),
    KeyBinding(("e", "enter"), StartEdit("title"), "Edit title"),
    KeyBinding(("E",), StartEdit("description"), "Edit description"),
    KeyBinding(("c",), ToggleDone(), "Toggle done"),
    KeyBinding(("x",), CancelTask(), "Toggle cancelled"),
    KeyBinding(("1",), SetPriority(1), "Priority 1 (highest)"),
    KeyBinding(("2",), SetPriority(2), "Priority 2"),
    KeyBinding(("3",), SetPriority(3), "Priority 3"),
    KeyBinding(("4",), SetPriority(4), "Priority 4 (lowest)"),
    KeyBinding(("K", "shift+up"), MoveTask(-1), "Move task up"),
    KeyBinding(("J", "shift+down"), MoveTask(1), "Move task down"),
    KeyBinding((">", "tab"), Indent(), "Indent"),
    KeyBinding(("<", "shift+tab"), Outdent(), "Outdent"),
    KeyBinding(("d", "delete"), RequestDelete(), "Delete task"),
    KeyBinding(("f",), OpenFilterEdit(), "Edit current view"),
    KeyBinding(("F",), OpenFilterEdit(new=True), "New view"),
    KeyBinding(("space",), OpenViewSelect(), "Select view"),
    KeyBinding(("n",), CycleView(1), "Next view"),
    KeyBinding(("p",), CycleView(-1), "Previous view"),
    KeyBinding(("C",), ToggleCalendar(), "Calendar"),
    KeyBinding(("u",), Undo(), "Undo"),
    KeyBinding(("U", "ctrl+r"), Redo(), "Redo"),
    KeyBinding(("?",), ShowHelp(), "Help"),
    KeyBinding(("q",), Quit(), "Save and quit"),
]

TEXT_BINDINGS = [
    KeyBinding(("enter",), Commit(), "Save"),
    KeyBinding(("escape",), Cancel(), "Discard"),
    KeyBinding(("backspace",), Backspace(), "Delete before cursor"),
    KeyBinding(("delete",), DeleteForward(), "Delete under cursor"),
    KeyBinding(("ctrl+w",), DeleteWord(), "Delete word"),
    KeyBinding(("left",), BufferLeft(), "Cursor left"),
    KeyBinding(("right",), BufferRight(), "Cursor right"),
    KeyBinding(("ctrl+left",), BufferLeft(by_word=True), "Previous word"),
    KeyBinding(("ctrl+right",), BufferRight(by_word=True), "Next word"),
    KeyBinding(("home", "ctrl+a"), BufferHome(), "Start of line"),
    KeyBinding(("end", "ctrl+e"), BufferEnd(), "End of line"),
]

FILTER_EDIT_BINDINGS = [
    KeyBinding(("tab",), SwitchField(), "Switch name / expression"),
    KeyBinding(("ctrl+o",), CycleSortKey(), "Cycle sort key"),
    KeyBinding(("ctrl+t",), ToggleShowCompleted(), "Toggle completed tasks"),
    *TEXT_BINDINGS,
]

VIEW_SELECT_BINDINGS = [
    KeyBinding(("j", "down"), MoveCursor(1), "Next view"),
    KeyBinding(("k", "up"), MoveCursor(-1), "Previous view"),
    KeyBinding(("enter", "space"), Commit(), "Activate view"),
    KeyBinding(("d", "delete"), DeleteSelectedView(), "Delete view"),
    KeyBinding(("escape", "q"), Cancel(), "Close"),
]

CONFIRM_BINDINGS = [
    KeyBinding(("y", "enter"), Commit(), "Delete"),
    KeyBinding(("n", "escape"), Cancel(), "Keep"),
]

HELP_BINDINGS = [
    KeyBinding(("escape", "?", "q", "enter"), Cancel(), "Close help"),
]

CALENDAR_BINDINGS = [
    KeyBinding(("h", "left"), CalendarMove(-1, "d"), "Previous day"),
    KeyBinding(("l", "right"), CalendarMove(1, "d"), "Next day"),
    KeyBinding(("k", "up"), CalendarMove(-1, "w"), "Previous week"),
    KeyBinding(("j", "down"), CalendarMove(1, "w"), "Next week"),
    KeyBinding(("H", "pageup"), CalendarMove(-1, "m"), "Previous month"),
    KeyBinding(("L", "pagedown"), CalendarMove(1, "m"), "Next month"),
    KeyBinding(("t",), CalendarToday(), "Today"),
    KeyBinding(("tab", "J"), MoveCursor(1), "Next task on day"),
    KeyBinding(("shift+tab", "K"), MoveCursor(-1), "Previous task on day"),
    KeyBinding(("e", "enter"), StartEdit(), "Reschedule task"),
    KeyBinding(("o",), OpenInList(), "Show task in list"),
    KeyBinding(("u",), Undo(), "Undo"),
    KeyBinding(("U", "ctrl+r"), Redo(), "Redo"),
    KeyBinding(("?",), ShowHelp(), "Help"),
    KeyBinding(("C", "escape"), ToggleCalendar(), "Back to list"),
    KeyBinding(("q",), Quit(), "Save and quit"),
]

MODE_BINDINGS: dict[Mode, list[KeyBinding]] = {
    "normal": NORMAL_BINDINGS,
    "editing": TEXT_BINDINGS,
    "filter_edit": FILTER_EDIT_BINDINGS,
    "view_select": VIEW_SELECT_BINDINGS,
    "confirm_delete": CONFIRM_BINDINGS,
    "help": HELP_BINDINGS,
    "calendar": CALENDAR_BINDINGS,
    "calendar_editing": TEXT_BINDINGS,
}

TEXT_MODES = frozenset({"editing", "filter_edit", "calendar_editing"})

_TABLES: dict[str, dict[str, Command]] = {
    mode: {key: binding.command for binding in bindings for key in binding.keys}
    for mode, bindings in MODE_BINDINGS.items()
}


def command_for(mode: str, key: str, character: str | None = None) -> Command | None:
    """Translate a key press into a command for ``mode``, or None if unbound.

    In text modes every unbound printable character is typed into the buffer.
    """
    table = _TABLES[mode]
    command = table.get(key)
    if command is None and character:
        command = table.get(character)
    if command is None and mode in TEXT_MODES and character and character.isprintable():
        command = InsertText(character)
    return command


def help_rows(mode: str) -> list[tuple[str, str]]:
    """(keys, description) pairs for the help overlay."""
    rows = [(", ".join(binding.keys), binding.description) for binding in MODE_BINDINGS[mode]]
    if mode in ("normal", "calendar"):
        rows.append((SAVE_KEY, "Save"))
    return rows
