"""Unit tests for View, ViewDraft and build_view."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from chors.models.exceptions import ValidationFailedError
from chors.models.task import Task
from chors.models.view import SORT_KEYS, View, ViewDraft, build_view, default_view


class TestView:
    def test_default_view(self):
        view = default_view()
        assert view.name == "All"
        assert view.predicate_spec == ""
        assert view.sort_key == "manual"
        assert view.show_completed is True

    def test_name_and_expression_are_stripped(self):
        view = View(name="  Work  ", predicate_spec="  #work  ")
        assert view.name == "Work"
        assert view.predicate_spec == "#work"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="View name cannot be empty"):
            View(name="  ")

    def test_invalid_expression_rejected(self):
        with pytest.raises(ValidationError, match="Unclosed parenthesis"):
            View(name="Broken", predicate_spec="(#a")

    def test_unknown_sort_key_rejected(self):
        with pytest.raises(ValidationError):
            View(name="x", sort_key="colour")

    def test_compile_uses_reference_day(self):
        view = View(name="Today", predicate_spec="due:today")
        task = Task(id=1, title="x", due=date(2024, 5, 15))
        assert view.compile(date(2024, 5, 15))(task)
        assert not view.compile(date(2024, 5, 16))(task)


class TestBuildView:
    def test_returns_view(self):
        assert build_view(name="Open", predicate_spec="[ ]").name == "Open"

    def test_wraps_errors(self):
        with pytest.raises(ValidationFailedError, match="View name cannot be empty"):
            build_view(name="", predicate_spec="")

    def test_error_message_names_position(self):
        with pytest.raises(ValidationFailedError, match="at position 4"):
            build_view(name="x", predicate_spec="#a )")


class TestViewDraft:
    def test_from_view_copies_everything(self):
        view = View(name="Work", predicate_spec="#work", sort_key="due", show_completed=False)
        draft = ViewDraft.from_view(view)
        assert draft.original_name == "Work"
        assert draft.name == "Work"
        assert draft.predicate_spec == "#work"
        assert draft.sort_key == "due"
        assert draft.show_completed is False

    def test_next_sort_key_cycles(self):
        draft = ViewDraft()
        seen = []
        for _ in SORT_KEYS:
            seen.append(draft.sort_key)
            draft = draft.next_sort_key()
        assert seen == list(SORT_KEYS)
        assert draft.sort_key == "manual"

    def test_toggle_show_completed_returns_copy(self):
        draft = ViewDraft()
        toggled = draft.toggle_show_completed()
        assert toggled.show_completed is False
        assert draft.show_completed is True

    def test_draft_does_not_validate(self):
        draft = ViewDraft(name="", predicate_spec="((")
        assert draft.predicate_spec == "(("
