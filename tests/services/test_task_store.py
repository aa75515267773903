"""Unit tests for services/task_store.py."""

from __future__ import annotations

import itertools
from datetime import date, datetime

import pytest

from chors.models.exceptions import (
    CycleDetectedError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from chors.models.snapshot import TaskRecord
from chors.services.task_store import TaskStore


def reachable(store: TaskStore) -> set[int]:
    """Every id reachable from the roots through children_of."""
    found: set[int] = set()
    stack = store.children_of(None)
    while stack:
        current = stack.pop()
        found.add(current)
        stack.extend(store.children_of(current))
    return found


def titles(store: TaskStore, parent_id=None) -> list[str]:
    return [store.get(task_id).title for task_id in store.children_of(parent_id)]


# ---------------------------------------------------------------------------
# Creation and queries
# ---------------------------------------------------------------------------


class TestCreate:
    def test_root_is_appended(self):
        s = TaskStore()
        a = s.create(None, "A")
        b = s.create(None, "B")
        assert s.roots() == [a, b]
        assert s.get(a).parent_id is None

    def test_child_is_appended_to_parent(self, store):
        assert titles(store, 1) == ["Buy milk @shop", "Call mum @phone #family"]
        assert store.get(2).parent_id == 1

    def test_missing_parent(self):
        with pytest.raises(NotFoundError):
            TaskStore().create(99, "Orphan")

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_blank_title(self, title):
        s = TaskStore()
        with pytest.raises(ValidationFailedError, match="Title cannot be empty"):
            s.create(None, title)
        assert len(s) == 0
        assert s.next_id == 1

    def test_title_is_stripped(self):
        s = TaskStore()
        assert s.get(s.create(None, "  Tidy up  ")).title == "Tidy up"

    def test_insert_at_index(self, store):
        new = store.create(1, "Between", index=1)
        assert store.children_of(1) == [2, new, 3]

    @pytest.mark.parametrize("index, expected_position", [(-5, 0), (99, 2)])
    def test_index_is_clamped(self, store, index, expected_position):
        new = store.create(1, "Clamped", index=index)
        assert store.children_of(1).index(new) == expected_position

    def test_optional_fields(self):
        s = TaskStore()
        task_id = s.create(None, "Pay rent", due=date(2024, 6, 1), priority=1, description="Bank")
        task = s.get(task_id)
        assert task.due == datetime(2024, 6, 1)
        assert task.priority == 1
        assert task.description == "Bank"

    def test_invalid_priority(self):
        with pytest.raises(ValidationFailedError):
            TaskStore().create(None, "x", priority=9)

    def test_ids_are_never_reused(self):
        s = TaskStore()
        a = s.create(None, "A")
        s.delete(a)
        b = s.create(None, "B")
        assert b != a
        assert b == 2


class TestQueries:
    def test_get_returns_copy(self, store):
        task = store.get(1)
        task.title = "Changed"
        task.children.clear()
        assert store.get(1).title == "Inbox"
        assert store.children_of(1) == [2, 3]

    def test_get_missing(self, store):
        assert store.get(99) is None
        with pytest.raises(NotFoundError):
            store.require(99)

    def test_children_of_returns_copy(self, store):
        store.children_of(1).append(99)
        assert store.children_of(1) == [2, 3]

    def test_children_of_missing(self, store):
        with pytest.raises(NotFoundError):
            store.children_of(99)

    def test_walk_is_pre_order_with_depth(self, store):
        assert list(store.walk()) == [(1, 0), (2, 1), (3, 1), (4, 0), (5, 1), (6, 2)]
        assert list(store) == [1, 2, 3, 4, 5, 6]

    def test_walk_from_parent(self, store):
        assert list(store.walk(4)) == [(5, 0), (6, 1)]

    def test_descendants_and_ancestors(self, store):
        assert store.descendants(4) == [5, 6]
        assert store.ancestors(6) == [5, 4]
        assert store.ancestors(1) == []

    def test_parent_and_index(self, store):
        assert store.parent_of(3) == 1
        assert store.index_in_parent(3) == 1
        assert store.index_in_parent(4) == 1

    def test_len_and_contains(self, store):
        assert len(store) == 6
        assert 6 in store
        assert 7 not in store

    def test_subtree_size(self, store):
        assert store.subtree_size(4) == 3
        assert store.subtree_size(6) == 1


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


class TestUpdateFields:
    def test_applies_only_given_fields(self, store):
        updated = store.update_fields(2, {"priority": 1})
        assert updated.priority == 1
        assert updated.title == "Buy milk @shop"

    def test_clearing_a_date(self):
        s = TaskStore()
        task_id = s.create(None, "x", due=date(2024, 1, 1))
        s.update_fields(task_id, {"due": None})
        assert s.get(task_id).due is None

    def test_blank_title_leaves_task_untouched(self, store):
        with pytest.raises(ValidationFailedError):
            store.update_fields(2, {"title": "  "})
        assert store.get(2).title == "Buy milk @shop"

    def test_title_none_rejected(self, store):
        with pytest.raises(ValidationFailedError, match="Title cannot be empty"):
            store.update_fields(2, {"title": None})

    def test_priority_cannot_be_cleared(self, store):
        with pytest.raises(ValidationFailedError):
            store.update_fields(2, {"priority": None})

    def test_missing_task(self, store):
        with pytest.raises(NotFoundError):
            store.update_fields(99, {"title": "x"})

    def test_updated_at_moves(self, store):
        before = store.get(2).updated_at
        store.update_fields(2, {"title": "Buy oat milk"})
        assert store.get(2).updated_at >= before

    def test_set_schedule(self, store):
        store.set_schedule(2, date(2024, 5, 20))
        assert store.get(2).scheduled == datetime(2024, 5, 20)
        store.set_schedule(2, None)
        assert store.get(2).scheduled is None


class TestSetStatus:
    def test_cascades_to_subtree(self, store):
        changed = store.set_status(4, "done")
        assert changed == 3
        assert {store.get(i).status for i in (4, 5, 6)} == {"done"}
        assert store.get(1).status == "open"

    def test_counts_only_changes(self, store):
        store.set_status(6, "done")
        assert store.set_status(4, "done") == 2

    def test_without_cascade(self, store):
        assert store.set_status(4, "done", cascade=False) == 1
        assert store.get(5).status == "open"

    def test_store_level_cascade_switch(self):
        s = TaskStore(cascade_status=False)
        parent = s.create(None, "P")
        child = s.create(parent, "C")
        s.set_status(parent, "done")
        assert s.get(child).status == "open"

    def test_completed_at(self, store):
        store.set_status(2, "done")
        assert store.get(2).completed_at is not None
        store.set_status(2, "open")
        assert store.get(2).completed_at is None

    def test_unknown_status(self, store):
        with pytest.raises(ValidationFailedError):
            store.set_status(2, "someday")


# ---------------------------------------------------------------------------
# Moving
# ---------------------------------------------------------------------------


class TestMoveSubtree:
    def test_move_to_other_parent(self, store):
        store.move_subtree(5, 1, 0)
        assert store.children_of(1) == [5, 2, 3]
        assert store.children_of(4) == []
        assert store.get(5).parent_id == 1
        assert store.children_of(5) == [6]

    def test_move_to_root(self, store):
        store.move_subtree(6, None)
        assert store.roots() == [1, 4, 6]
        assert store.get(6).parent_id is None

    def test_reorder_within_parent(self, store):
        store.move_subtree(3, 1, 0)
        assert store.children_of(1) == [3, 2]

    def test_onto_itself(self, store):
        with pytest.raises(CycleDetectedError):
            store.move_subtree(4, 4)

    def test_under_descendant(self, store):
        with pytest.raises(CycleDetectedError):
            store.move_subtree(4, 6)
        assert store.children_of(4) == [5]
        assert store.get(4).parent_id is None

    def test_missing_target(self, store):
        with pytest.raises(NotFoundError):
            store.move_subtree(2, 99)

    def test_cycle_detected_for_every_descendant_in_every_shape(self):
        """For each small tree shape, moving under self or any descendant fails."""
        # Each shape is a parent list: shape[i] is the parent index of node i+1
        shapes = [
            [0],
            [0, 0],
            [0, 1],
            [0, 1, 2],
            [0, 0, 1],
            [0, 1, 1],
            [0, 1, 0, 3],
        ]
        for shape in shapes:
            s = TaskStore()
            ids = [s.create(None, "root")]
            for parent_index in shape:
                ids.append(s.create(ids[parent_index], f"n{len(ids)}"))
            before = list(s)
            for task_id in ids:
                for target in [task_id, *s.descendants(task_id)]:
                    with pytest.raises(CycleDetectedError):
                        s.move_subtree(task_id, target)
            assert list(s) == before


class TestSiblingHelpers:
    def test_move_up_and_down(self, store):
        store.move_down(2)
        assert store.children_of(1) == [3, 2]
        store.move_up(2)
        assert store.children_of(1) == [2, 3]

    def test_edges(self, store):
        with pytest.raises(InvalidStateError):
            store.move_up(2)
        with pytest.raises(InvalidStateError):
            store.move_down(3)

    def test_indent(self, store):
        store.indent(3)
        assert store.children_of(1) == [2]
        assert store.children_of(2) == [3]

    def test_indent_first_child(self, store):
        with pytest.raises(InvalidStateError):
            store.indent(2)

    def test_outdent(self, store):
        store.outdent(6)
        assert store.children_of(4) == [5, 6]
        store.outdent(2)
        assert store.roots() == [1, 2, 4]

    def test_outdent_root(self, store):
        with pytest.raises(InvalidStateError):
            store.outdent(1)


# ---------------------------------------------------------------------------
# Deleting
# ---------------------------------------------------------------------------


class TestDelete:
    def test_cascade_scenario(self):
        s = TaskStore()
        a = s.create(None, "A")
        b = s.create(a, "B")
        s.create(b, "C")
        assert s.delete(a) == 3
        assert len(s) == 0
        assert s.roots() == []

    def test_no_orphan_remains_reachable(self, store):
        for task_id in list(store):
            if task_id not in store:
                continue
            removed = set([task_id, *store.descendants(task_id)])
            store.delete(task_id)
            assert reachable(store).isdisjoint(removed)
            assert reachable(store) == set(store)

    def test_delete_leaf_keeps_siblings(self, store):
        assert store.delete(2) == 1
        assert store.children_of(1) == [3]

    def test_reparent_policy(self):
        s = TaskStore(delete_policy="reparent")
        a = s.create(None, "A")
        b = s.create(a, "B")
        c = s.create(b, "C")
        d = s.create(b, "D")
        e = s.create(a, "E")

        assert s.deletion_count(b) == 1
        assert s.delete(b) == 1
        assert s.children_of(a) == [c, d, e]
        assert s.get(c).parent_id == a

    def test_reparent_root_children_become_roots(self):
        s = TaskStore(delete_policy="reparent")
        a = s.create(None, "A")
        b = s.create(a, "B")
        z = s.create(None, "Z")
        s.delete(a)
        assert s.roots() == [b, z]
        assert s.get(b).parent_id is None

    def test_deletion_count_cascade(self, store):
        assert store.deletion_count(4) == 3

    def test_missing(self, store):
        with pytest.raises(NotFoundError):
            store.delete(99)


# ---------------------------------------------------------------------------
# Clone and records
# ---------------------------------------------------------------------------


class TestCloneAndRecords:
    def test_clone_is_independent(self, store):
        copy = store.clone()
        copy.delete(4)
        copy.update_fields(2, {"title": "Changed"})
        assert len(store) == 6
        assert store.get(2).title == "Buy milk @shop"
        assert copy.next_id == store.next_id

    def test_records_are_pre_order(self, store):
        records = store.to_records()
        assert [r.id for r in records] == [1, 2, 3, 4, 5, 6]
        assert records[0].children_order == [2, 3]
        assert records[5].parent_id == 5

    def test_round_trip(self, store):
        store.update_fields(3, {"due": date(2024, 5, 1), "priority": 2, "description": "Sunday"})
        store.set_status(5, "done")
        rebuilt = TaskStore.from_records(store.to_records(), store.next_id)

        assert list(rebuilt.walk()) == list(store.walk())
        for task_id in store:
            assert rebuilt.get(task_id) == store.get(task_id)
        assert rebuilt.next_id == store.next_id

    def test_next_id_defaults_past_highest(self):
        records = [TaskRecord(id=7, title="Seven")]
        assert TaskStore.from_records(records).next_id == 8

    def test_policies_are_passed_through(self, store):
        rebuilt = TaskStore.from_records(store.to_records(), delete_policy="reparent")
        assert rebuilt.delete_policy == "reparent"


class TestFromRecordsValidation:
    @pytest.mark.parametrize(
        "records, message",
        [
            (
                [TaskRecord(id=1, title="A"), TaskRecord(id=1, title="B")],
                "Duplicate task id 1",
            ),
            ([TaskRecord(id=0, title="A")], "Invalid task id 0"),
            ([TaskRecord(id=1, title="  ")], "empty title"),
            ([TaskRecord(id=2, title="B", parent_id=1)], "missing parent 1"),
            ([TaskRecord(id=1, title="A", children_order=[2])], "missing child 2"),
            (
                [
                    TaskRecord(id=1, title="A", children_order=[2]),
                    TaskRecord(id=2, title="B"),
                ],
                "is listed under 1",
            ),
            (
                [
                    TaskRecord(id=1, title="A", children_order=[2, 2]),
                    TaskRecord(id=2, title="B", parent_id=1),
                ],
                "listed twice",
            ),
            (
                [
                    TaskRecord(id=1, title="A"),
                    TaskRecord(id=2, title="B", parent_id=1),
                ],
                "missing from its parent's children",
            ),
            (
                [
                    TaskRecord(id=1, title="A", parent_id=2, children_order=[2]),
                    TaskRecord(id=2, title="B", parent_id=1, children_order=[1]),
                ],
                "Cycle",
            ),
        ],
    )
    def test_invalid_forest(self, records, message):
        with pytest.raises(ValidationFailedError, match=message):
            TaskStore.from_records(records)

    def test_next_id_must_not_reuse(self):
        with pytest.raises(ValidationFailedError, match="would reuse"):
            TaskStore.from_records([TaskRecord(id=3, title="C")], next_id=3)

    def test_empty(self):
        s = TaskStore.from_records([])
        assert len(s) == 0
        assert s.next_id == 1


def test_every_permutation_of_creation_keeps_forest_consistent():
    """Mixed create/move/delete sequences never break parent/child agreement."""
    for order in itertools.permutations(["a", "b", "c"]):
        s = TaskStore()
        ids = {name: s.create(None, name) for name in order}
        s.move_subtree(ids["b"], ids["a"])
        s.move_subtree(ids["c"], ids["b"])
        s.delete(ids["b"])
        for task_id in s:
            task = s.get(task_id)
            siblings = s.children_of(task.parent_id)
            assert task_id in siblings
        assert set(s) == {ids["a"]}
