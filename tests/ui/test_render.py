"""Unit tests for ui/render.py."""

from __future__ import annotations

import io
from datetime import date

import pytest
from rich.console import Console

from chors.models.config_models import AppConfig
from chors.models.edit_buffer import EditBuffer
from chors.models.interaction import (
    AddTask,
    FrameRow,
    InsertText,
    OpenFilterEdit,
    OpenViewSelect,
    RequestDelete,
    ShowHelp,
    StartEdit,
    ToggleCalendar,
)
from chors.models.task import Task
from chors.services.interaction import InteractionMachine
from chors.services.task_store import TaskStore
from chors.services.view_manager import ViewManager
from chors.ui.render import (
    render_body,
    render_buffer,
    render_input,
    render_list,
    render_row,
    render_status,
    task_title,
    visible_window,
)

from conftest import TODAY


def plain(renderable, width: int = 100) -> str:
    console = Console(record=True, width=width, file=io.StringIO())
    console.print(renderable)
    return console.export_text()


@pytest.fixture()
def machine(store) -> InteractionMachine:
    return InteractionMachine(store, ViewManager(), AppConfig(), today=lambda: TODAY)


class TestVisibleWindow:
    @pytest.mark.parametrize(
        "count, cursor, height, expected",
        [
            (3, 2, 10, (0, 3)),
            (10, 0, 4, (0, 4)),
            (10, 5, 4, (3, 7)),
            (10, 9, 4, (6, 10)),
            (10, None, 4, (0, 4)),
            (10, 5, 0, (0, 10)),
        ],
    )
    def test_window(self, count, cursor, height, expected):
        assert visible_window(count, cursor, height) == expected


class TestRow:
    def test_title_highlights_tags_and_contexts(self):
        text = task_title(Task(id=1, title="Call mum @phone #family"))
        assert text.plain == "Call mum @phone #family"
        styled = {text.plain[span.start : span.end]: str(span.style) for span in text.spans}
        assert styled == {"@phone": "magenta", "#family": "cyan"}

    def test_plain_row(self):
        row = FrameRow(Task(id=2, title="Buy milk"), depth=1, has_visible_children=False, matched=True)
        assert render_row(row).plain == "    [ ] !4 Buy milk"

    def test_parent_with_dates_and_description(self):
        task = Task(
            id=1,
            title="Report",
            priority=1,
            due=date(2024, 5, 20),
            scheduled=date(2024, 5, 18),
            description="quarterly",
        )
        row = FrameRow(task, depth=0, has_visible_children=True, matched=True)
        assert render_row(row).plain == "▾ [ ] !1 Report  ⏲ 2024-05-18  ⚑ 2024-05-20  …"

    def test_done_task_struck_through(self):
        row = FrameRow(Task(id=1, title="Old", status="done"), 0, False, True)
        text = render_row(row)
        assert text.plain.startswith("  [x]")
        assert any("strike" in str(span.style) for span in text.spans)

    def test_selected_row_reversed(self):
        row = FrameRow(Task(id=1, title="Here"), 0, False, True)
        assert any("reverse" in str(span.style) for span in render_row(row, selected=True).spans)
        assert not any("reverse" in str(span.style) for span in render_row(row).spans)


class TestList:
    def test_empty(self):
        machine = InteractionMachine(TaskStore(), ViewManager(), today=lambda: TODAY)
        assert render_list(machine.frame()).plain == "No tasks. Press a to add one."

    def test_rows_in_order(self, machine):
        lines = plain(render_list(machine.frame())).splitlines()
        assert [line.strip() for line in lines] == [
            "▾ [ ] !4 Inbox",
            "[ ] !4 Buy milk @shop",
            "[ ] !4 Call mum @phone #family",
            "▾ [ ] !4 Work #job",
            "▾ [ ] !4 Report",
            "[ ] !4 Draft",
        ]

    def test_height_limits_rows(self, machine):
        machine.cursor = 5
        lines = plain(render_list(machine.frame(), height=2)).splitlines()
        assert len(lines) == 2
        assert lines[-1].strip().endswith("Draft")


class TestInputLine:
    def test_buffer_cursor(self):
        text = render_buffer("Title", EditBuffer("abc", 1))
        assert text.plain == "Title: abc"
        reversed_spans = [s for s in text.spans if str(s.style) == "reverse"]
        assert [text.plain[s.start : s.end] for s in reversed_spans] == ["b"]

    def test_cursor_at_end_draws_blank_cell(self):
        assert render_buffer("Date", EditBuffer.prefilled("x")).plain == "Date: x "

    def test_normal_mode_has_no_input(self, machine):
        assert render_input(machine.frame()) is None

    def test_new_task(self, machine):
        machine.dispatch(AddTask())
        machine.dispatch(InsertText("Tea"))
        assert render_input(machine.frame()).plain == "New task: Tea "

    def test_edit_title(self, machine):
        machine.dispatch(StartEdit())
        assert render_input(machine.frame()).plain == "Title: Inbox "

    def test_filter(self, machine):
        machine.dispatch(OpenFilterEdit())
        assert render_input(machine.frame()).plain == "Filter:  "

    def test_confirm_delete(self, machine):
        machine.dispatch(RequestDelete())
        assert render_input(machine.frame()).plain == "Delete 3 tasks? (y/n)"


class TestBody:
    def test_help(self, machine):
        machine.dispatch(ShowHelp())
        text = plain(render_body(machine.frame()))
        assert "Save and quit" in text
        assert "ctrl+s" in text

    def test_view_select(self, machine):
        machine.views.save_view("Work", {"predicate_spec": "#job"})
        machine.dispatch(OpenViewSelect())
        text = plain(render_body(machine.frame()))
        assert "● All" in text
        assert "Work" in text

    def test_filter_draft_above_list(self, machine):
        machine.dispatch(OpenFilterEdit())
        machine.dispatch(InsertText("#job"))
        text = plain(render_body(machine.frame()))
        assert "#job" in text
        assert "manual" in text
        assert "Inbox" in text

    def test_calendar(self, machine):
        machine.store.update_fields(2, {"due": date(2024, 5, 20)})
        machine.cursor = 1
        machine.dispatch(ToggleCalendar())
        text = plain(render_body(machine.frame()), width=140)
        assert "May 2024" in text
        assert "2024-05-20" in text
        assert "Buy milk @shop" in text


class TestStatusLine:
    def test_view_and_mode(self, machine):
        assert render_status(machine.frame()).plain == " All  normal "

    def test_dirty_marker_and_message(self, machine):
        machine.dispatch(ToggleCalendar())
        machine.dispatch(RequestDelete())
        text = render_status(machine.frame()).plain
        assert text.startswith(" All  calendar ")
        assert "RequestDelete is not available in calendar mode" in text

    def test_unsaved_changes(self, machine):
        machine.dirty = True
        assert "●" in render_status(machine.frame()).plain
