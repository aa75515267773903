"""View manager - named views and the active one."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from chors.models.exceptions import InvalidStateError, NotFoundError, ValidationFailedError
from chors.models.view import View, build_view, default_view
from chors.services.filter_engine import ViewList, project
from chors.services.task_store import TaskStore
from chors.utils.logger import get_logger


class ViewManager:
    """Holds the saved views and which one is active.

    There is always at least one view: a fresh manager starts with the
    built-in "All" view, and the last remaining view cannot be deleted.
    """

    def __init__(
        self,
        views: Iterable[View] | None = None,
        active_view_name: str | None = None,
    ):
        self._views: dict[str, View] = {}
        for view in views or ():
            if view.name in self._views:
                raise ValidationFailedError(f"Duplicate view name '{view.name}'")
            self._views[view.name] = view.model_copy()
        if not self._views:
            fallback = default_view()
            self._views[fallback.name] = fallback

        if active_view_name not in self._views:
            active_view_name = next(iter(self._views))
        self._active_name: str = active_view_name

    # Queries

    def __len__(self) -> int:
        return len(self._views)

    def __contains__(self, name: object) -> bool:
        return name in self._views

    def views(self) -> list[View]:
        return [view.model_copy() for view in self._views.values()]

    def names(self) -> list[str]:
        return list(self._views)

    def get(self, name: str) -> View:
        view = self._views.get(name)
        if view is None:
            raise NotFoundError(f"View '{name}' not found")
        return view.model_copy()

    @property
    def active_view_name(self) -> str:
        return self._active_name

    @property
    def active_view(self) -> View:
        return self._views[self._active_name].model_copy()

    def next_view_name(self, step: int = 1) -> str:
        """Name of the view ``step`` places after the active one, wrapping around."""
        names = self.names()
        return names[(names.index(self._active_name) + step) % len(names)]

    def project(self, store: TaskStore, today: date | None = None) -> ViewList:
        """Project the store through the active view."""
        return project(store, self._views[self._active_name], today)

    # Mutations

    def save_view(self, name: str, view: View | Mapping[str, Any]) -> View:
        """Create or overwrite the view called ``name``.

        Args:
            name: View name (the given view's own name, if any, is ignored)
            view: A View or a mapping with predicate_spec, sort_key, show_completed

        Raises:
            ValidationFailedError: If the name is blank or the expression is invalid
        """
        fields = view.model_dump() if isinstance(view, View) else dict(view)
        fields["name"] = name
        saved = build_view(**fields)
        self._views[saved.name] = saved
        get_logger("views").info("view saved: %s", saved.name)
        return saved.model_copy()

    def activate_view(self, name: str) -> View:
        """Make ``name`` the active view.

        Raises:
            NotFoundError: If no view has that name
        """
        view = self.get(name)
        self._active_name = view.name
        get_logger("views").info("view activated: %s", view.name)
        return view

    def delete_view(self, name: str) -> None:
        """Delete a view.

        Raises:
            NotFoundError: If no view has that name
            InvalidStateError: If it is the active view or the last view
        """
        self.get(name)
        if name == self._active_name:
            raise InvalidStateError(f"Cannot delete the active view '{name}'")
        if len(self._views) == 1:
            raise InvalidStateError("Cannot delete the last view")
        del self._views[name]
        get_logger("views").info("view deleted: %s", name)

    def rename_view(self, old_name: str, new_name: str) -> View:
        """Rename a view, keeping its position and active status."""
        view = self.get(old_name)
        renamed = build_view(**{**view.model_dump(), "name": new_name})
        if renamed.name != old_name and renamed.name in self._views:
            raise ValidationFailedError(f"View '{renamed.name}' already exists")

        self._views = {
            (renamed.name if name == old_name else name): (renamed if name == old_name else existing)
            for name, existing in self._views.items()
        }
        if self._active_name == old_name:
            self._active_name = renamed.name
        get_logger("views").info("view renamed: %s -> %s", old_name, renamed.name)
        return renamed.model_copy()
