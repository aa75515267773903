"""View (saved filter) models."""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ValidationError, field_validator

from chors.models.exceptions import ValidationFailedError
from chors.models.predicate import Predicate, compile_expression

SortKey = Literal["manual", "priority", "due", "scheduled", "title", "status"]
SORT_KEYS: tuple[SortKey, ...] = (
    "manual",
    "priority",
    "due",
    "scheduled",
    "title",
    "status",
)

DEFAULT_VIEW_NAME = "All"


class View(BaseModel):
    """A named filter configuration.

    A view owns no task references, only the recipe for a projection.

    Attributes:
        name: Unique view name
        predicate_spec: Filter expression (see chors.models.predicate)
        sort_key: How siblings are ordered in the projection
        show_completed: Whether done and cancelled tasks are listed
    """

    name: str
    predicate_spec: str = ""
    sort_key: SortKey = "manual"
    show_completed: bool = True

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("View name cannot be empty")
        return value

    @field_validator("predicate_spec")
    @classmethod
    def _predicate_parses(cls, value: str) -> str:
        value = value.strip()
        try:
            compile_expression(value)
        except ValidationFailedError as e:
            raise ValueError(str(e)) from e
        return value

    def compile(self, today: date | None = None) -> Predicate:
        """Compile the filter expression (relative dates resolve against ``today``)."""
        return compile_expression(self.predicate_spec, today)


def default_view() -> View:
    """The built-in fallback view listing every task."""
    return View(name=DEFAULT_VIEW_NAME, predicate_spec="", sort_key="manual", show_completed=True)


class ViewDraft(BaseModel):
    """Mutable staging copy of a view while it is being edited.

    Nothing is validated until the draft is turned into a View.
    """

    original_name: str | None = None
    name: str = ""
    predicate_spec: str = ""
    sort_key: SortKey = "manual"
    show_completed: bool = True

    @classmethod
    def from_view(cls, view: View) -> ViewDraft:
        return cls(
            original_name=view.name,
            name=view.name,
            predicate_spec=view.predicate_spec,
            sort_key=view.sort_key,
            show_completed=view.show_completed,
        )

    def next_sort_key(self) -> ViewDraft:
        index = SORT_KEYS.index(self.sort_key)
        return self.model_copy(update={"sort_key": SORT_KEYS[(index + 1) % len(SORT_KEYS)]})

    def toggle_show_completed(self) -> ViewDraft:
        return self.model_copy(update={"show_completed": not self.show_completed})


def build_view(**fields) -> View:
    """Validate fields into a View, reporting problems as ValidationFailedError."""
    try:
        return View(**fields)
    except ValidationError as e:
        messages = "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
        raise ValidationFailedError(messages) from e

