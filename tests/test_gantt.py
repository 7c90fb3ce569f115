"""Tests for the Gantt chart widget."""

from datetime import date

import pytest

from fakes import FailingStore
from tui_planner.app import PlannerApp
from tui_planner.models import Task
from tui_planner.timeline import ChartWindow
from tui_planner.widgets.gantt_chart import GanttChart, GanttHeader, _DayColumns


PAUSE = 0.1
TODAY = date(2024, 8, 1)  # a Thursday


def _tree():
    return (
        Task("Plan", id="p", start_date=date(2024, 8, 1), end_date=date(2024, 8, 3)),
        Task(
            "Phase", id="ph",
            subtasks=(Task("Step", id="s", start_date=date(2024, 8, 5), end_date=date(2024, 8, 6)),),
        ),
        Task("Later", id="l"),
    )


class TestDayColumns:
    def test_mapping(self):
        cols = _DayColumns(ChartWindow(TODAY, date(2024, 8, 10)), 3, set())
        assert cols.width == 30
        assert cols.day_index(5) == 1
        assert cols.day(5) == date(2024, 8, 2)
        assert cols.col(date(2024, 8, 4)) == 9

    def test_weekend_and_holiday(self):
        cols = _DayColumns(ChartWindow(TODAY, date(2024, 8, 10)), 2, {date(2024, 8, 2)})
        assert not cols.is_weekend(0)
        assert cols.is_weekend(4)  # Saturday
        assert cols.is_holiday(2)
        assert not cols.is_holiday(0)


@pytest.fixture
def store():
    return FailingStore({"local": _tree()})


@pytest.mark.asyncio
async def test_bars_render(tmp_path, store):
    app = PlannerApp(project_dir=tmp_path, store=store, today=TODAY)
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        view = app.query_one(GanttChart).view
        assert view.render_line(0).text.startswith("█" * 9 + " ")
        # Undated parent: summary over its subtasks' range
        summary = view.render_line(1).text
        assert summary.index("╌") == 12
        assert summary.count("╌") == 6
        later = view.render_line(3).text
        assert later.startswith("│")
        assert "█" not in later


@pytest.mark.asyncio
async def test_header_rows(tmp_path, store):
    app = PlannerApp(project_dir=tmp_path, store=store, today=TODAY)
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        header = app.query_one("#gantt-header", GanttHeader)
        assert header.render_line(0).text.startswith("Aug 2024")
        assert header.render_line(1).text.startswith(" 01 02")
        assert header.render_line(2).text.startswith("▼┄")


@pytest.mark.asyncio
async def test_preview_while_dragging(tmp_path, store):
    app = PlannerApp(project_dir=tmp_path, store=store, today=TODAY)
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        view = app.query_one(GanttChart).view
        view.press(4, 0)
        view.drag_to(10)
        line = view.render_line(0).text
        assert line.index("▓") == 6
        assert line.count("▓") == 9
        view.cancel_gesture()
        assert "▓" not in view.render_line(0).text


@pytest.mark.asyncio
async def test_remote_origin_change_waits_for_gesture(tmp_path, store):
    app = PlannerApp(project_dir=tmp_path, store=store, today=TODAY)
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        view = app.query_one(GanttChart).view
        view.press(4, 0)
        store.push_remote(
            "local",
            (Task("Plan", id="p", start_date=date(2024, 8, 10), end_date=date(2024, 8, 12)),),
        )
        await pilot.pause(delay=PAUSE)
        assert view.controller.active
        assert view.columns.window.start == TODAY
        view.cancel_gesture()
        assert view.columns.window.start == date(2024, 8, 10)
        assert view.controller.chart_start == date(2024, 8, 10)


@pytest.mark.asyncio
async def test_empty_tree_message(tmp_path):
    app = PlannerApp(project_dir=tmp_path, store=FailingStore(), today=TODAY)
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        view = app.query_one(GanttChart).view
        assert "No tasks yet" in view.render_line(0).text


@pytest.mark.asyncio
async def test_press_during_open_gesture_starts_over(tmp_path, store):
    app = PlannerApp(project_dir=tmp_path, store=store, today=TODAY)
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause(delay=PAUSE)
        view = app.query_one(GanttChart).view
        view.press(4, 0)
        view.drag_to(10)
        # The release of the first gesture never arrived
        assert view.press(13, 2)
        assert view.controller.state.task_id == "s"
        updates = view.release(16)
        assert [(t.id, t.start_date) for t in updates] == [("s", date(2024, 8, 6))]
        await pilot.pause(delay=PAUSE)
        assert app.tree[0].start_date == date(2024, 8, 1)

        view.press(4, 0)
        assert not view.press(60, 0)
        assert not view.controller.active
