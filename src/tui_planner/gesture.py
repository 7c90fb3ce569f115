"""Pointer gesture state machine for the scheduling surface.

A gesture is one press–move–release sequence. The controller is always in
exactly one of five states; only ``Idle`` accepts a new gesture. Pointer
moves produce a preview, release produces a batch of task updates, and
cancel returns to ``Idle`` without producing anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Union

from tui_planner.errors import GestureError, GestureInProgressError
from tui_planner.models import Task
from tui_planner.timeline import (
    day_delta,
    index_to_date,
    index_to_pixel,
    inclusive_width,
    pixel_to_index,
    task_span,
)
from tui_planner.tree import iter_tasks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    """No gesture in progress."""


@dataclass(frozen=True)
class _BarGesture:
    """A gesture on an existing bar; indices are the bar's original span."""

    task: Task
    pointer_start: float
    start_index: int
    end_index: int

    @property
    def task_id(self) -> str:
        return self.task.id


@dataclass(frozen=True)
class Dragging(_BarGesture):
    """Moving the whole bar."""


@dataclass(frozen=True)
class ResizingStart(_BarGesture):
    """Moving the left edge; the end index stays fixed."""


@dataclass(frozen=True)
class ResizingEnd(_BarGesture):
    """Moving the right edge; the start index stays fixed."""


@dataclass(frozen=True)
class CreatingRange:
    task: Task
    pointer_start: float
    anchor_index: int

    @property
    def task_id(self) -> str:
        return self.task.id


GestureState = Union[Idle, Dragging, ResizingStart, ResizingEnd, CreatingRange]


@dataclass(frozen=True)
class PreviewGeometry:
    """Where the bar of the gesture's task would be drawn right now."""

    task_id: str
    start_index: int
    end_index: int
    left: float
    width: float
    start_date: date
    end_date: date


def shift_task(task: Task, days: int) -> Task:
    """Move both dates of a scheduled task by *days*, keeping its duration."""
    if task.start_date is None or task.end_date is None:
        raise GestureError(f"task {task.id} has no dates to shift")
    delta = timedelta(days=days)
    return replace(task, start_date=task.start_date + delta, end_date=task.end_date + delta)


def build_drag_updates(task: Task, days: int) -> list[Task]:
    """Updates for dragging *task* by *days*, cascading to scheduled descendants.

    Each descendant with both dates moves by the same number of days, so
    durations and offsets relative to the parent are preserved. Descendants
    without dates are left alone.
    """
    if days == 0 or not task.is_scheduled:
        return []
    updates = [shift_task(task, days)]
    for sub in iter_tasks(task.subtasks):
        if sub.is_scheduled:
            updates.append(shift_task(sub, days))
    return updates


class GestureController:
    """Turns pointer coordinates into day-snapped schedule changes."""

    def __init__(self, chart_start: date, day_width: float) -> None:
        if day_width <= 0:
            raise ValueError(f"day width must be positive, got {day_width}")
        self.chart_start = chart_start
        self.day_width = day_width
        self._state: GestureState = Idle()
        self._preview: PreviewGeometry | None = None

    @property
    def state(self) -> GestureState:
        return self._state

    @property
    def active(self) -> bool:
        return not isinstance(self._state, Idle)

    @property
    def preview(self) -> PreviewGeometry | None:
        return self._preview

    def set_day_width(self, day_width: float) -> None:
        """Change the zoom; an active gesture keeps going at the new scale."""
        if day_width <= 0:
            raise ValueError(f"day width must be positive, got {day_width}")
        self.day_width = day_width

    def set_chart_start(self, chart_start: date) -> None:
        if self.active:
            raise GestureInProgressError("cannot move the chart origin during a gesture")
        self.chart_start = chart_start

    # ── Begin ──

    def _ensure_idle(self) -> None:
        if self.active:
            raise GestureInProgressError(
                f"gesture {type(self._state).__name__} already active "
                f"for task {self._state.task_id}"  # type: ignore[union-attr]
            )

    def _scheduled_span(self, task: Task) -> tuple[int, int]:
        span = task_span(self.chart_start, task)
        if span is None:
            raise GestureError(f"task {task.id} has no dates to move")
        return span

    def begin_drag(self, task: Task, pointer_x: float) -> None:
        self._ensure_idle()
        start, end = self._scheduled_span(task)
        self._state = Dragging(task, pointer_x, start, end)
        logger.debug("drag started on %s at x=%s", task.id, pointer_x)

    def begin_resize(self, task: Task, edge: str, pointer_x: float) -> None:
        """Start resizing; *edge* is ``"start"`` or ``"end"``."""
        if edge not in ("start", "end"):
            raise ValueError(f"edge must be 'start' or 'end', got {edge!r}")
        self._ensure_idle()
        start, end = self._scheduled_span(task)
        cls = ResizingStart if edge == "start" else ResizingEnd
        self._state = cls(task, pointer_x, start, end)
        logger.debug("resize-%s started on %s at x=%s", edge, task.id, pointer_x)

    def begin_create(self, task: Task, pointer_x: float) -> None:
        self._ensure_idle()
        if task.is_scheduled:
            raise GestureError(f"task {task.id} is already scheduled")
        anchor = pixel_to_index(pointer_x, self.day_width)
        self._state = CreatingRange(task, pointer_x, anchor)
        logger.debug("create started on %s at day %d", task.id, anchor)

    # ── Move / release ──

    def _proposed_span(self, pointer_x: float) -> tuple[int, int]:
        state = self._state
        if isinstance(state, CreatingRange):
            current = pixel_to_index(pointer_x, self.day_width)
            return min(state.anchor_index, current), max(state.anchor_index, current)
        if isinstance(state, _BarGesture):
            delta = day_delta(state.pointer_start, pointer_x, self.day_width)
            if isinstance(state, ResizingStart):
                return min(state.start_index + delta, state.end_index), state.end_index
            if isinstance(state, ResizingEnd):
                return state.start_index, max(state.end_index + delta, state.start_index)
            return state.start_index + delta, state.end_index + delta
        raise GestureError("no gesture in progress")

    def update_pointer(self, pointer_x: float) -> PreviewGeometry:
        """Preview the gesture's result at *pointer_x* without committing."""
        start, end = self._proposed_span(pointer_x)
        self._preview = PreviewGeometry(
            task_id=self._state.task_id,  # type: ignore[union-attr]
            start_index=start,
            end_index=end,
            left=index_to_pixel(start, self.day_width),
            width=inclusive_width(start, end, self.day_width),
            start_date=index_to_date(self.chart_start, start),
            end_date=index_to_date(self.chart_start, end),
        )
        return self._preview

    def commit(self, pointer_x: float) -> list[Task]:
        """Finish the gesture at *pointer_x* and return the update batch.

        Returns an empty list when idle or when nothing changed.
        """
        state = self._state
        if isinstance(state, Idle):
            return []
        start, end = self._proposed_span(pointer_x)
        self._reset()

        if isinstance(state, CreatingRange):
            updates = [
                replace(
                    state.task,
                    start_date=index_to_date(self.chart_start, start),
                    end_date=index_to_date(self.chart_start, end),
                )
            ]
        elif (start, end) == (state.start_index, state.end_index):
            updates = []
        elif isinstance(state, (ResizingStart, ResizingEnd)):
            updates = [
                replace(
                    state.task,
                    start_date=index_to_date(self.chart_start, start),
                    end_date=index_to_date(self.chart_start, end),
                )
            ]
        else:
            updates = build_drag_updates(state.task, start - state.start_index)
        logger.debug(
            "%s on %s committed with %d update(s)",
            type(state).__name__, state.task_id, len(updates),
        )
        return updates

    def cancel(self) -> None:
        """Abandon the active gesture, if any, discarding its preview."""
        if self.active:
            logger.debug("%s cancelled", type(self._state).__name__)
        self._reset()

    def _reset(self) -> None:
        self._state = Idle()
        self._preview = None
