"""Tests for data models."""

from dataclasses import FrozenInstanceError, replace
from datetime import date

import pytest

from tui_planner.models import (
    COMPLETED_ICON,
    OPEN_ICON,
    IngestWarning,
    Progress,
    ProjectConfig,
    Task,
    format_date,
    new_task_id,
)


class TestTask:
    def test_defaults(self):
        task = Task("Write docs")
        assert task.name == "Write docs"
        assert task.id.startswith("task-")
        assert task.completed is False
        assert task.subtasks == ()
        assert task.start_date is None and task.end_date is None

    def test_frozen(self):
        task = Task("A", id="a")
        with pytest.raises(FrozenInstanceError):
            task.name = "B"  # type: ignore[misc]

    def test_replace_keeps_original(self):
        task = Task("A", id="a")
        done = replace(task, completed=True)
        assert task.completed is False
        assert done.completed is True
        assert done.id == "a"

    def test_with_subtask_appends_last(self):
        parent = Task("P", id="p", subtasks=(Task("A", id="a"),))
        result = parent.with_subtask(Task("B", id="b"))
        assert [t.id for t in result.subtasks] == ["a", "b"]
        assert [t.id for t in parent.subtasks] == ["a"]

    def test_all_tasks_preorder(self):
        tree = Task(
            "R", id="r",
            subtasks=(Task("A", id="a", subtasks=(Task("A1", id="a1"),)), Task("B", id="b")),
        )
        assert [t.id for t in tree.all_tasks()] == ["r", "a", "a1", "b"]

    def test_duration_is_inclusive(self):
        task = Task("A", start_date=date(2024, 8, 1), end_date=date(2024, 8, 3))
        assert task.is_scheduled
        assert task.duration_days == 3

    def test_single_day_task(self):
        task = Task("A", start_date=date(2024, 8, 1), end_date=date(2024, 8, 1))
        assert task.duration_days == 1

    def test_unscheduled(self):
        task = Task("A", start_date=date(2024, 8, 1))
        assert not task.is_scheduled
        assert task.duration_days is None

    def test_progress_counts_self(self):
        task = Task("P", completed=True, subtasks=(Task("A"), Task("B", completed=True)))
        assert task.progress == Progress(2, 3)

    def test_status_icon(self):
        assert Task("A").status_icon == OPEN_ICON
        assert Task("A", completed=True).status_icon == COMPLETED_ICON


class TestTaskIds:
    def test_unique(self):
        ids = {new_task_id() for _ in range(500)}
        assert len(ids) == 500

    def test_monotonic_stamp(self):
        stamps = [int(new_task_id().split("-")[1]) for _ in range(50)]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == 50


class TestProgress:
    def test_percent(self):
        assert Progress(1, 4).percent == 25.0

    def test_empty_percent_is_zero(self):
        assert Progress(0, 0).percent == 0.0


class TestFormatDate:
    def test_default(self):
        assert format_date(date(2024, 8, 1)) == "2024-08-01"

    def test_preset(self):
        assert format_date(date(2024, 8, 1), "DD.MM.YYYY") == "01.08.2024"

    def test_none(self):
        assert format_date(None) == ""

    def test_unknown_format_falls_back_to_iso(self):
        assert format_date(date(2024, 8, 1), "nonsense") == "2024-08-01"


class TestMisc:
    def test_ingest_warning_str(self):
        assert str(IngestWarning("tasks[0]", "blank name")) == "tasks[0]: blank name"

    def test_project_config_defaults(self):
        config = ProjectConfig()
        assert config.owner_id == "local"
        assert config.min_day_width <= config.day_width <= config.max_day_width
