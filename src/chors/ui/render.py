"""Turn a Frame into rich renderables.

Everything here is a pure function of its arguments; the Textual app only
places the results on screen.
"""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from chors.models.edit_buffer import EditBuffer
from chors.models.interaction import (
    CalendarEditingState,
    ConfirmDeleteState,
    EditingState,
    FilterEditState,
    Frame,
    FrameRow,
    HelpState,
    NewTask,
    ViewSelectState,
)
from chors.models.task import Task
from chors.ui.keymap import help_rows
from chors.utils.dates import format_date

STATUS_MARKERS = {"open": "[ ]", "done": "[x]", "cancelled": "[-]"}
PRIORITY_STYLES = {1: "bold red", 2: "yellow", 3: "cyan", 4: "dim"}
MAX_CELL_TASKS = 2


def visible_window(count: int, cursor: int | None, height: int) -> tuple[int, int]:
    """Slice ``[start, end)`` of ``count`` rows that fits ``height`` and shows the cursor."""
    if height <= 0 or count <= height:
        return 0, count
    cursor = cursor or 0
    start = max(0, min(cursor - height // 2, count - height))
    return start, start + height


def task_title(task: Task) -> Text:
    """Title with tags and contexts highlighted."""
    text = Text()
    for index, word in enumerate(task.title.split(" ")):
        if index:
            text.append(" ")
        if word.startswith("#") and len(word) > 1:
            text.append(word, style="cyan")
        elif word.startswith("@") and len(word) > 1:
            text.append(word, style="magenta")
        else:
            text.append(word)
    return text


def render_row(row: FrameRow, selected: bool = False) -> Text:
    task = row.task
    line = Text("  " * row.depth)
    line.append("▾ " if row.has_visible_children else "  ", style="dim")
    line.append(STATUS_MARKERS[task.status], style="green" if task.status == "done" else "")
    line.append(" ")
    line.append(f"!{task.priority} ", style=PRIORITY_STYLES.get(task.priority, ""))
    line.append_text(task_title(task))
    if task.scheduled:
        line.append(f"  ⏲ {format_date(task.scheduled)}", style="blue")
    if task.due:
        line.append(f"  ⚑ {format_date(task.due)}", style="red")
    if task.description:
        line.append("  …", style="dim")

    if not task.is_open:
        line.stylize("strike dim")
    elif not row.matched:
        line.stylize("dim")
    if selected:
        line.stylize("reverse")
    return line


def render_list(frame: Frame, height: int = 0) -> RenderableType:
    if not frame.rows:
        return Text("No tasks. Press a to add one.", style="dim italic")
    start, end = visible_window(len(frame.rows), frame.cursor, height)
    return Group(
        *(
            render_row(row, selected=index == frame.cursor)
            for index, row in enumerate(frame.rows[start:end], start)
        )
    )


def render_calendar(frame: Frame) -> RenderableType:
    """Month grid around the calendar cursor, plus the tasks of the selected day."""
    day = getattr(frame.state, "day", None)
    if day is None or not frame.calendar:
        return Text("")

    table = Table(title=day.strftime("%B %Y"), expand=True, show_lines=True)
    for cell in frame.calendar[0]:
        table.add_column(cell.day.strftime("%a"), ratio=1, overflow="ellipsis")

    for week in frame.calendar:
        cells = []
        for cell in week:
            text = Text()
            text.append(str(cell.day.day), style="bold" if cell.in_month else "dim")
            for task in cell.tasks[:MAX_CELL_TASKS]:
                text.append("\n")
                text.append(task.title, style="" if task.is_open else "strike dim")
            if len(cell.tasks) > MAX_CELL_TASKS:
                text.append(f"\n+{len(cell.tasks) - MAX_CELL_TASKS} more", style="dim")
            if cell.day == day:
                text.stylize("reverse")
            cells.append(text)
        table.add_row(*cells)

    index = getattr(frame.state, "index", 0)
    day_list = Text()
    day_list.append(f"{format_date(day)}\n", style="bold")
    if not frame.calendar_tasks:
        day_list.append("No tasks", style="dim")
    for position, task in enumerate(frame.calendar_tasks):
        line = Text(f"{STATUS_MARKERS[task.status]} !{task.priority} ")
        line.append_text(task_title(task))
        if position == index:
            line.stylize("reverse")
        day_list.append_text(line)
        day_list.append("\n")
    return Group(table, day_list)


def render_buffer(label: str, buffer: EditBuffer) -> Text:
    """Input line with the cursor drawn as a reversed cell."""
    text = Text()
    text.append(f"{label}: ", style="bold")
    text.append(buffer.text[: buffer.cursor])
    text.append(buffer.text[buffer.cursor : buffer.cursor + 1] or " ", style="reverse")
    text.append(buffer.text[buffer.cursor + 1 :])
    return text


def render_input(frame: Frame) -> Text | None:
    match frame.state:
        case EditingState(target=NewTask(), buffer=buffer):
            return render_buffer("New task", buffer)
        case EditingState(field=field, buffer=buffer):
            return render_buffer(field.capitalize(), buffer)
        case FilterEditState(focus=focus, buffer=buffer):
            return render_buffer("View name" if focus == "name" else "Filter", buffer)
        case CalendarEditingState(buffer=buffer):
            return render_buffer("Date", buffer)
        case ConfirmDeleteState(count=count):
            noun = "task" if count == 1 else "tasks"
            return Text(f"Delete {count} {noun}? (y/n)", style="bold red")
    return None


def render_filter_draft(frame: Frame) -> RenderableType:
    state = frame.state
    assert isinstance(state, FilterEditState)
    draft = state.draft
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Name", draft.name if state.focus != "name" else state.buffer.text)
    table.add_row(
        "Filter",
        draft.predicate_spec if state.focus != "expression" else state.buffer.text,
    )
    table.add_row("Sort", draft.sort_key)
    table.add_row("Completed", "shown" if draft.show_completed else "hidden")
    return table


def render_view_select(frame: Frame) -> RenderableType:
    state = frame.state
    assert isinstance(state, ViewSelectState)
    table = Table(title="Views", show_header=False, expand=True)
    table.add_column()
    for index, name in enumerate(frame.view_names):
        text = Text(("● " if name == frame.view_name else "  ") + name)
        if index == state.index:
            text.stylize("reverse")
        table.add_row(text)
    return table


def render_help(mode: str) -> RenderableType:
    table = Table(title="Keys", expand=True)
    table.add_column("Key", style="bold cyan", no_wrap=True)
    table.add_column("Action")
    for keys, description in help_rows(mode):
        table.add_row(keys, description)
    return table


def render_status(frame: Frame) -> Text:
    text = Text()
    text.append(f" {frame.view_name} ", style="bold reverse")
    text.append(f" {frame.mode.replace('_', ' ')} ", style="dim")
    if frame.dirty:
        text.append("● ", style="yellow")
    if frame.status is not None:
        text.append(frame.status.text, style="bold red" if frame.status.level == "error" else "")
    return text


def render_body(frame: Frame, height: int = 0) -> RenderableType:
    """Main area for the current mode."""
    state = frame.state
    match state:
        case HelpState(previous=previous):
            return render_help(previous.mode)
        case ViewSelectState():
            return render_view_select(frame)
        case FilterEditState():
            return Group(render_filter_draft(frame), Text(""), render_list(frame, height))
    if frame.calendar:
        return render_calendar(frame)
    return render_list(frame, height)
