"""Tests for date/index/pixel conversions and the chart window."""

from datetime import date, timedelta

import pytest

from tui_planner.models import Task
from tui_planner.timeline import (
    END_PADDING_DAYS,
    FUTURE_DAYS,
    MAX_DAY_WIDTH,
    MIN_DAY_WIDTH,
    ChartWindow,
    chart_window,
    clamp_day_width,
    date_to_index,
    day_delta,
    inclusive_width,
    index_to_date,
    index_to_pixel,
    pixel_to_index,
    round_half_up,
    task_span,
    zoom_in,
    zoom_out,
)

START = date(2024, 8, 1)


class TestDayIndex:
    def test_round_trip(self):
        for i in (-40, -1, 0, 1, 30, 400):
            assert date_to_index(START, index_to_date(START, i)) == i

    def test_across_month_and_leap_day(self):
        assert date_to_index(date(2024, 2, 28), date(2024, 3, 1)) == 2

    def test_before_start_is_negative(self):
        assert date_to_index(START, date(2024, 7, 30)) == -2


class TestPixels:
    def test_pixel_to_index_floors(self):
        assert pixel_to_index(0, 10) == 0
        assert pixel_to_index(9.99, 10) == 0
        assert pixel_to_index(10, 10) == 1

    def test_left_of_origin_clamps_to_zero(self):
        assert pixel_to_index(-25, 10) == 0

    def test_index_to_pixel(self):
        assert index_to_pixel(3, 12.5) == 37.5

    def test_inclusive_width(self):
        assert inclusive_width(2, 4, 10) == 30
        assert inclusive_width(5, 5, 10) == 10

    def test_inclusive_width_never_below_one_day(self):
        assert inclusive_width(5, 3, 10) == 10

    @pytest.mark.parametrize("width", [0, -3])
    def test_non_positive_width_rejected(self, width):
        with pytest.raises(ValueError):
            pixel_to_index(10, width)
        with pytest.raises(ValueError):
            day_delta(0, 10, width)


class TestDayDelta:
    def test_round_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(1.5) == 2
        assert round_half_up(2.5) == 3
        assert round_half_up(-0.5) == 0
        assert round_half_up(-0.6) == -1

    def test_snaps_to_nearest_day(self):
        assert day_delta(100, 104, 10) == 0
        assert day_delta(100, 105, 10) == 1
        assert day_delta(100, 126, 10) == 3
        assert day_delta(100, 84, 10) == -2


class TestZoom:
    def test_zoom_in_multiplies(self):
        assert zoom_in(20) == 30

    def test_zoom_out_divides(self):
        assert zoom_out(30) == 20

    def test_clamped(self):
        assert zoom_in(MAX_DAY_WIDTH) == MAX_DAY_WIDTH
        assert zoom_out(MIN_DAY_WIDTH) == MIN_DAY_WIDTH
        assert clamp_day_width(500) == MAX_DAY_WIDTH

    def test_custom_bounds(self):
        assert zoom_in(6, 1, 8) == 8
        assert zoom_out(1, 1, 8) == 1


class TestTaskSpan:
    def test_scheduled(self):
        task = Task("A", start_date=date(2024, 8, 3), end_date=date(2024, 8, 5))
        assert task_span(START, task) == (2, 4)

    def test_unscheduled(self):
        assert task_span(START, Task("A")) is None


class TestChartWindow:
    TODAY = date(2024, 8, 10)

    def test_empty_tree(self):
        window = chart_window((), self.TODAY)
        assert window.start == self.TODAY
        assert window.end == self.TODAY + timedelta(days=FUTURE_DAYS + END_PADDING_DAYS)

    def test_origin_is_today_when_work_started(self):
        tree = (Task("A", start_date=date(2024, 8, 1), end_date=date(2024, 8, 20)),)
        assert chart_window(tree, self.TODAY).start == self.TODAY

    def test_origin_moves_to_earliest_future_start(self):
        tree = (
            Task("A", start_date=date(2024, 9, 5), end_date=date(2024, 9, 6)),
            Task("B", start_date=date(2024, 9, 1), end_date=date(2024, 9, 2)),
        )
        assert chart_window(tree, self.TODAY).start == date(2024, 9, 1)

    def test_end_covers_latest_task(self):
        tree = (Task("A", subtasks=(Task("B", start_date=self.TODAY, end_date=date(2024, 12, 1)),)),)
        window = chart_window(tree, self.TODAY)
        assert window.end == date(2024, 12, 1) + timedelta(days=END_PADDING_DAYS)

    def test_window_days(self):
        window = ChartWindow(START, date(2024, 8, 3))
        assert window.total_days == 3
        assert window.total_width(4) == 12
        assert window.dates() == [date(2024, 8, 1), date(2024, 8, 2), date(2024, 8, 3)]
