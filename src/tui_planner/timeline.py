"""Conversions between civil dates, day indices and chart coordinates.

Day arithmetic is exact integer arithmetic on ``datetime.date`` values, which
carry no time of day or zone. Floating point only enters at the final
conversion to pixels (or terminal cells).
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from tui_planner.models import Task
from tui_planner.tree import iter_tasks

ZOOM_FACTOR = 1.5
MIN_DAY_WIDTH = 10
MAX_DAY_WIDTH = 100

FUTURE_DAYS = 30  # minimum visible horizon after today
END_PADDING_DAYS = 7


def date_to_index(start: date, d: date) -> int:
    """Whole days from *start* to *d* (negative before *start*)."""
    return (d - start).days


def index_to_date(start: date, index: int) -> date:
    return start + timedelta(days=index)


def _check_width(day_width: float) -> None:
    if day_width <= 0:
        raise ValueError(f"day width must be positive, got {day_width}")


def pixel_to_index(pixel_offset: float, day_width: float) -> int:
    """Day column containing *pixel_offset*; positions left of the origin map to 0."""
    _check_width(day_width)
    return max(0, math.floor(pixel_offset / day_width))


def index_to_pixel(index: int, day_width: float) -> float:
    _check_width(day_width)
    return index * day_width


def inclusive_width(start_index: int, end_index: int, day_width: float) -> float:
    """Width of a bar spanning both end days; never narrower than one day."""
    _check_width(day_width)
    return max(day_width, (end_index - start_index + 1) * day_width)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def day_delta(pointer_start: float, pointer_now: float, day_width: float) -> int:
    """Number of whole days a pointer has travelled, rounded to the nearest day."""
    _check_width(day_width)
    return round_half_up((pointer_now - pointer_start) / day_width)


def clamp_day_width(
    day_width: float, min_width: float = MIN_DAY_WIDTH, max_width: float = MAX_DAY_WIDTH
) -> float:
    return max(min_width, min(max_width, day_width))


def zoom_in(
    day_width: float, min_width: float = MIN_DAY_WIDTH, max_width: float = MAX_DAY_WIDTH
) -> float:
    return clamp_day_width(day_width * ZOOM_FACTOR, min_width, max_width)


def zoom_out(
    day_width: float, min_width: float = MIN_DAY_WIDTH, max_width: float = MAX_DAY_WIDTH
) -> float:
    return clamp_day_width(day_width / ZOOM_FACTOR, min_width, max_width)


def task_span(start: date, task: Task) -> tuple[int, int] | None:
    """Start/end day indices of a scheduled task, or None."""
    if task.start_date is None or task.end_date is None:
        return None
    return date_to_index(start, task.start_date), date_to_index(start, task.end_date)


@dataclass(frozen=True)
class ChartWindow:
    """The visible date range of a scheduling surface."""

    start: date
    end: date

    @property
    def total_days(self) -> int:
        return date_to_index(self.start, self.end) + 1

    def total_width(self, day_width: float) -> float:
        return self.total_days * day_width

    def dates(self) -> list[date]:
        return [index_to_date(self.start, i) for i in range(self.total_days)]


def chart_window(tree: Sequence[Task], today: date) -> ChartWindow:
    """Compute the chart origin and end for a tree.

    The origin is today, or the earliest scheduled start when every task
    starts in the future. The end covers the latest scheduled end and at
    least a month ahead, plus a week of padding.
    """
    starts = [t.start_date for t in iter_tasks(tree) if t.start_date]
    ends = [t.end_date for t in iter_tasks(tree) if t.end_date]

    origin = today
    if starts and min(starts) > today:
        origin = min(starts)

    horizon = today + timedelta(days=FUTURE_DAYS)
    last = max(ends) if ends else horizon
    if last < horizon:
        last = horizon
    return ChartWindow(origin, last + timedelta(days=END_PADDING_DAYS))
