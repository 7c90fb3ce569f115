"""Data models for TUI Planner."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from typing import NamedTuple

COMPLETED_ICON = "●"
OPEN_ICON = "○"

DATE_FORMAT_PRESETS: dict[str, str] = {
    "YYYY-MM-DD": "%Y-%m-%d",
    "MM/DD/YYYY": "%m/%d/%Y",
    "DD/MM/YYYY": "%d/%m/%Y",
    "DD.MM.YYYY": "%d.%m.%Y",
    "MMM DD, YYYY": "%b %d, %Y",
    "MM-DD": "%m-%d",
}
DEFAULT_DATE_FORMAT = "YYYY-MM-DD"

DEFAULT_TASK_NAME = "Untitled Task"


def format_date(d: date | None, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """Format a date for display. Returns empty string for None."""
    if d is None:
        return ""
    fmt = DATE_FORMAT_PRESETS.get(date_format)
    if fmt is None:
        return d.isoformat()
    return d.strftime(fmt)


_last_stamp = 0


def new_task_id() -> str:
    """Generate a task id: monotonic millisecond stamp plus a random suffix."""
    global _last_stamp
    stamp = max(int(time.time() * 1000), _last_stamp + 1)
    _last_stamp = stamp
    return f"task-{stamp}-{uuid.uuid4().hex[:6]}"


class Progress(NamedTuple):
    """Completion counts over a set of tasks."""

    completed: int
    total: int

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 0.0
        return self.completed / self.total * 100


@dataclass(frozen=True)
class Task:
    """A single node in the task tree. Immutable; use dataclasses.replace() to edit."""

    name: str
    id: str = field(default_factory=new_task_id)
    completed: bool = False
    description: str = ""
    subtasks: tuple[Task, ...] = ()
    start_date: date | None = None
    end_date: date | None = None
    dependencies: tuple[str, ...] = ()
    image_url: str | None = None

    def with_subtask(self, task: Task) -> Task:
        """Return a new task with an additional last subtask."""
        return replace(self, subtasks=(*self.subtasks, task))

    def all_tasks(self) -> list[Task]:
        """Return a flat pre-order list of this task and all descendants."""
        result = [self]
        for child in self.subtasks:
            result.extend(child.all_tasks())
        return result

    @property
    def is_scheduled(self) -> bool:
        return self.start_date is not None and self.end_date is not None

    @property
    def duration_days(self) -> int | None:
        """Inclusive day count, or None for an unscheduled task."""
        if self.start_date is None or self.end_date is None:
            return None
        return (self.end_date - self.start_date).days + 1

    @property
    def progress(self) -> Progress:
        """Progress over this task's subtree, the task itself included."""
        done = sum(1 for t in self.all_tasks() if t.completed)
        return Progress(done, len(self.all_tasks()))

    @property
    def status_icon(self) -> str:
        return COMPLETED_ICON if self.completed else OPEN_ICON


TaskTree = tuple[Task, ...]


@dataclass
class IngestWarning:
    """A recoverable problem found while reading a stored tree."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class ProjectConfig:
    """Project-level configuration stored in .tui-planner/config.toml."""

    name: str = ""
    owner_id: str = "local"
    date_format: str = DEFAULT_DATE_FORMAT
    day_width: int = 3
    min_day_width: int = 1
    max_day_width: int = 8
    store_path: str = ".tui-planner/store"
