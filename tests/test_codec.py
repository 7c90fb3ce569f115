"""Tests for reading and writing task documents."""

import json
from datetime import date

import pytest

from tui_planner.codec import dumps_tree, loads_tree, task_to_dict, tree_from_data
from tui_planner.errors import InvalidTreeError
from tui_planner.models import DEFAULT_TASK_NAME, Task
from tui_planner.tree import iter_tasks


class TestWrite:
    def test_camel_case_keys(self):
        task = Task(
            "A", id="a",
            start_date=date(2024, 8, 1), end_date=date(2024, 8, 3),
            dependencies=("b",), image_url="https://example.com/a.png",
        )
        d = task_to_dict(task)
        assert d["startDate"] == "2024-08-01"
        assert d["endDate"] == "2024-08-03"
        assert d["dependencies"] == ["b"]
        assert d["imageUrl"] == "https://example.com/a.png"

    def test_optional_keys_omitted(self):
        d = task_to_dict(Task("A", id="a"))
        assert set(d) == {"id", "name", "completed", "description", "subtasks"}

    def test_dumps_wraps_in_tasks(self):
        data = json.loads(dumps_tree((Task("A", id="a"),)))
        assert data["tasks"][0]["id"] == "a"

    def test_round_trip(self):
        tree = (
            Task(
                "A", id="a", completed=True, description="notes",
                start_date=date(2024, 8, 1), end_date=date(2024, 8, 3),
                subtasks=(Task("B", id="b"),),
            ),
        )
        result, warnings = loads_tree(dumps_tree(tree))
        assert result == tree
        assert warnings == []


class TestRead:
    def test_bare_list_accepted(self):
        tree, _ = tree_from_data([{"id": "a", "name": "A"}])
        assert tree[0].id == "a"

    def test_timestamp_keeps_civil_date(self):
        tree, _ = tree_from_data(
            [{"id": "a", "name": "A", "startDate": "2024-08-01T23:30:00Z", "endDate": "2024-08-02"}]
        )
        assert tree[0].start_date == date(2024, 8, 1)

    def test_missing_id_generated(self):
        tree, warnings = tree_from_data([{"name": "A"}])
        assert tree[0].id.startswith("task-")
        assert "missing id" in warnings[0].message

    def test_duplicate_id_rekeyed(self):
        tree, warnings = tree_from_data(
            [{"id": "a", "name": "A", "subtasks": [{"id": "a", "name": "Inner"}]}]
        )
        ids = [t.id for t in iter_tasks(tree)]
        assert ids[0] == "a"
        assert ids[1] != "a"
        assert warnings[0].path == "tasks[0].subtasks[0]"

    def test_blank_name(self):
        tree, warnings = tree_from_data([{"id": "a", "name": "  "}])
        assert tree[0].name == DEFAULT_TASK_NAME
        assert len(warnings) == 1

    def test_invalid_date_dropped(self):
        tree, warnings = tree_from_data(
            [{"id": "a", "name": "A", "startDate": "soon", "endDate": "2024-08-02"}]
        )
        assert tree[0].start_date is None
        assert tree[0].end_date == date(2024, 8, 2)
        assert "startDate" in warnings[0].message

    def test_inverted_dates_swapped(self):
        tree, warnings = tree_from_data(
            [{"id": "a", "name": "A", "startDate": "2024-08-05", "endDate": "2024-08-01"}]
        )
        assert (tree[0].start_date, tree[0].end_date) == (date(2024, 8, 1), date(2024, 8, 5))
        assert "swapped" in warnings[0].message

    def test_non_object_items_skipped(self):
        tree, warnings = tree_from_data([{"id": "a", "name": "A"}, 42, "x"])
        assert len(tree) == 1
        assert len(warnings) == 2

    def test_bad_subtasks_and_dependencies(self):
        tree, warnings = tree_from_data(
            [{"id": "a", "name": "A", "subtasks": "none", "dependencies": "b"}]
        )
        assert tree[0].subtasks == ()
        assert tree[0].dependencies == ()
        assert len(warnings) == 2

    @pytest.mark.parametrize("data", [None, 3, "tasks", {"items": []}])
    def test_not_a_tree(self, data):
        with pytest.raises(InvalidTreeError):
            tree_from_data(data)

    def test_invalid_json(self):
        with pytest.raises(InvalidTreeError):
            loads_tree("{not json")
