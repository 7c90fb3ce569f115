"""Indented task names beside the chart, one row per task."""

from __future__ import annotations

from textual import events
from textual.app import ComposeResult
from textual.containers import Container
from textual.geometry import Size
from textual.message import Message
from textual.scroll_view import ScrollView
from textual.strip import Strip
from textual.widgets import Static

from rich.segment import Segment
from rich.style import Style
from rich.text import Text

from tui_planner import theme
from tui_planner.models import COMPLETED_ICON, OPEN_ICON, Progress, Task
from tui_planner.tree import calculate_progress

INDENT = "  "
_PROGRESS_BAR_WIDTH = 10


def _progress_text(progress: Progress) -> Text:
    pct = progress.percent
    filled = round(_PROGRESS_BAR_WIDTH * pct / 100)
    text = Text()
    text.append(f"{progress.completed}/{progress.total} done ", style="bold")
    text.append("█" * filled, style="green")
    text.append("░" * (_PROGRESS_BAR_WIDTH - filled), style="dim")
    text.append(f" {pct:.0f}%")
    return text


class TaskRows(ScrollView):
    """Task names in tree order, aligned with the chart rows."""

    class ScrollYChanged(Message):
        def __init__(self, scroll_y: float) -> None:
            super().__init__()
            self.scroll_y = scroll_y

    class TaskSelected(Message):
        def __init__(self, task_id: str) -> None:
            super().__init__()
            self.task_id = task_id

    can_focus = False

    DEFAULT_CSS = """
    TaskRows {
        height: 1fr;
        background: $background;
        overflow-x: hidden;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._rows: list[tuple[Task, int]] = []
        self._highlighted_row = -1

    def update_rows(self, rows: list[tuple[Task, int]], highlighted_row: int = -1) -> None:
        self._rows = rows
        self._highlighted_row = highlighted_row
        self.virtual_size = Size(self.size.width, max(len(rows), self.size.height))
        self.refresh()

    def watch_scroll_y(self, old: float, new: float) -> None:
        self.post_message(self.ScrollYChanged(new))

    def on_mouse_down(self, event: events.MouseDown) -> None:
        row = event.y + int(self.scroll_offset.y)
        if 0 <= row < len(self._rows):
            self.post_message(self.TaskSelected(self._rows[row][0].id))

    def render_line(self, y: int) -> Strip:
        width = self.size.width
        virtual_y = y + int(self.scroll_offset.y)
        if virtual_y >= len(self._rows):
            return Strip.blank(width)

        task, depth = self._rows[virtual_y]
        dark = theme.is_dark(self.app)
        if virtual_y == self._highlighted_row:
            row_style = Style(bgcolor=theme.GANTT_HIGHLIGHT_BG.resolve(dark), bold=True)
        else:
            row_style = Style()

        if task.completed:
            icon = Segment(COMPLETED_ICON, Style(color=theme.GANTT_BAR_DONE.resolve(dark)) + row_style)
            name_style = row_style + Style(dim=True, strike=True)
        else:
            icon = Segment(OPEN_ICON, row_style)
            name_style = row_style

        label = f" {task.name}"
        if task.subtasks:
            sub = calculate_progress(task.subtasks)
            label += f" ({sub.completed}/{sub.total})"
        segments = [Segment(INDENT * depth, row_style), icon, Segment(label, name_style)]
        return Strip(segments).adjust_cell_length(width, row_style)


class TaskList(Container):
    """Progress summary above the task rows."""

    DEFAULT_CSS = """
    TaskList {
        width: 40;
        height: 1fr;
        border-right: vkey $primary-background;
    }
    TaskList #task-list-header {
        height: 3;
        padding: 0 1;
    }
    TaskList #task-rows {
        height: 1fr;
    }
    """

    def compose(self) -> ComposeResult:
        yield Static("", id="task-list-header")
        yield TaskRows(id="task-rows")

    @property
    def rows(self) -> TaskRows:
        return self.query_one("#task-rows", TaskRows)

    def update_list(
        self,
        rows: list[tuple[Task, int]],
        progress: Progress,
        title: str = "Tasks",
        highlighted_row: int = -1,
    ) -> None:
        header = Text(title, style="bold")
        header.append("\n")
        header.append_text(_progress_text(progress))
        self.query_one("#task-list-header", Static).update(header)
        self.rows.update_rows(rows, highlighted_row)
