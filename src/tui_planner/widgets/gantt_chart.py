"""Gantt chart widget: day header plus draggable task bars."""

from __future__ import annotations

from datetime import date, timedelta

from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.geometry import Size
from textual.message import Message
from textual.scroll_view import ScrollView
from textual.strip import Strip
from textual.widget import Widget

from rich.segment import Segment
from rich.style import Style
from rich.text import Text

from tui_planner import theme
from tui_planner.gesture import GestureController, PreviewGeometry
from tui_planner.models import Task
from tui_planner.timeline import ChartWindow, date_to_index, task_span
from tui_planner.tree import enclosing_range

_DAY_ABBR = "MTWTFSS"  # Mon=0..Sun=6


class _DayColumns:
    """Maps character columns to days for one window and zoom level."""

    def __init__(self, window: ChartWindow, day_width: int, holidays: set[date]) -> None:
        self.window = window
        self.day_width = day_width
        self.holidays = holidays

    @property
    def width(self) -> int:
        return self.window.total_days * self.day_width

    def day_index(self, col: int) -> int:
        return col // self.day_width

    def day(self, col: int) -> date:
        return self.window.start + timedelta(days=self.day_index(col))

    def col(self, d: date) -> int:
        return date_to_index(self.window.start, d) * self.day_width

    def is_weekend(self, col: int) -> bool:
        return self.day(col).weekday() >= 5

    def is_holiday(self, col: int) -> bool:
        return bool(self.holidays) and self.day(col) in self.holidays


class _Painter:
    """Shared background logic for header and bars."""

    @property
    def _is_dark(self) -> bool:
        return theme.is_dark(self.app)  # type: ignore[attr-defined]

    def _background(self, cols: _DayColumns, c: int, base: Style) -> Style:
        dark = self._is_dark
        # Holiday takes priority over weekend
        if cols.is_holiday(c):
            return Style(bgcolor=theme.GANTT_HOLIDAY_BG.resolve(dark))
        if cols.is_weekend(c):
            return Style(bgcolor=theme.GANTT_WEEKEND_BG.resolve(dark))
        return base


class GanttHeader(_Painter, Widget):
    """Fixed header: month labels, day labels, and the today marker."""

    DEFAULT_CSS = """
    GanttHeader {
        height: 3;
        background: $background;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._cols = _DayColumns(ChartWindow(date.today(), date.today()), 3, set())
        self._today = date.today()
        self.scroll_x_offset: int = 0

    def update_header(self, cols: _DayColumns, today: date) -> None:
        self._cols = cols
        self._today = today
        self.refresh()

    def render_line(self, y: int) -> Strip:
        width = max(self.size.width, self._cols.width)
        if y == 0:
            full = self._render_month_row(width)
        elif y == 1:
            full = self._render_day_row(width)
        elif y == 2:
            full = self._render_today_row(width)
        else:
            return Strip.blank(self.size.width)
        return full.crop(self.scroll_x_offset, self.scroll_x_offset + self.size.width)

    def _render_month_row(self, width: int) -> Strip:
        dark = self._is_dark
        label_style = Style(bold=True, color=theme.GANTT_HEADER.resolve(dark))
        band = Style(bgcolor=theme.GANTT_BAND_BG.resolve(dark))
        base = Style(bgcolor=theme.GANTT_BASE_BG.resolve(dark))

        # (label, start_col, span) per calendar month
        spans: list[tuple[str, int, int]] = []
        prev: tuple[int, int] | None = None
        for c in range(0, width, self._cols.day_width):
            d = self._cols.day(c)
            span_w = min(self._cols.day_width, width - c)
            if (d.year, d.month) != prev:
                spans.append((d.strftime("%b %Y"), c, span_w))
                prev = (d.year, d.month)
            else:
                label, start, w = spans[-1]
                spans[-1] = (label, start, w + span_w)

        segments: list[Segment] = []
        for i, (label, _, span_w) in enumerate(spans):
            bg = band if i % 2 == 1 else base
            segments.append(Segment(label[:span_w].ljust(span_w), label_style + bg))
        return Strip(segments)

    def _render_day_row(self, width: int) -> Strip:
        dark = self._is_dark
        label_style = Style(bold=True, color=theme.GANTT_HEADER.resolve(dark))
        base = Style(bgcolor=theme.GANTT_BASE_BG.resolve(dark))
        cw = self._cols.day_width
        segments: list[Segment] = []
        for c in range(0, width, cw):
            d = self._cols.day(c)
            if cw >= 2:
                label = d.strftime("%d")[-cw:].rjust(cw)
            else:
                label = _DAY_ABBR[d.weekday()]
            span_w = min(cw, width - c)
            segments.append(Segment(label[:span_w], label_style + self._background(self._cols, c, base)))
        return Strip(segments)

    def _render_today_row(self, width: int) -> Strip:
        dark = self._is_dark
        marker = Style(color=theme.GANTT_TODAY_MARKER.resolve(dark))
        base = Style(bgcolor=theme.GANTT_BASE_BG.resolve(dark), dim=True)
        today_col = self._cols.col(self._today)
        segments = [
            Segment("▼", marker + base) if c == today_col else Segment("┄", base)
            for c in range(width)
        ]
        return Strip(segments)


class GanttView(_Painter, ScrollView):
    """Renders the task bars and turns mouse gestures into schedule changes."""

    class ScrollXChanged(Message):
        """Emitted when horizontal scroll position changes."""

        def __init__(self, scroll_x: float) -> None:
            super().__init__()
            self.scroll_x = scroll_x

    class ScrollYChanged(Message):
        """Emitted when vertical scroll position changes."""

        def __init__(self, scroll_y: float) -> None:
            super().__init__()
            self.scroll_y = scroll_y

    class ScheduleCommitted(Message):
        """A finished gesture produced task updates to apply as one batch."""

        def __init__(self, updates: list[Task]) -> None:
            super().__init__()
            self.updates = updates

    class TaskSelected(Message):
        def __init__(self, task_id: str) -> None:
            super().__init__()
            self.task_id = task_id

    # Rows follow the app cursor; left/right still scroll the days
    BINDINGS = [
        Binding("up", "app.cursor_up", "Up", show=False),
        Binding("down", "app.cursor_down", "Down", show=False),
    ]

    DEFAULT_CSS = """
    GanttView {
        height: 1fr;
        background: $background;
        overflow-y: auto;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        today = date.today()
        self._rows: list[tuple[Task, int]] = []
        self._today = today
        self._cols = _DayColumns(ChartWindow(today, today), 3, set())
        self._pending_window: ChartWindow | None = None
        self._highlighted_row: int = -1
        self.controller = GestureController(today, 3)

    # ── Data ──

    @property
    def columns(self) -> _DayColumns:
        return self._cols

    @property
    def today(self) -> date:
        return self._today

    def update_gantt(
        self,
        rows: list[tuple[Task, int]],
        window: ChartWindow,
        day_width: int,
        today: date,
        holidays: set[date],
        highlighted_row: int = -1,
    ) -> None:
        self._rows = rows
        self._today = today
        self._highlighted_row = highlighted_row
        self.controller.set_day_width(day_width)
        if self.controller.active and window.start != self.controller.chart_start:
            # The origin moves once the gesture is over
            self._pending_window = window
            window = ChartWindow(self._cols.window.start, max(window.end, self._cols.window.end))
        else:
            self.controller.set_chart_start(window.start)
        self._cols = _DayColumns(window, day_width, holidays)
        self.virtual_size = Size(self._cols.width, max(len(rows), self.size.height))
        self.refresh()

    def _apply_pending_window(self) -> None:
        if self._pending_window is None:
            return
        window, self._pending_window = self._pending_window, None
        self.controller.set_chart_start(window.start)
        self._cols = _DayColumns(window, self._cols.day_width, self._cols.holidays)
        self.virtual_size = Size(self._cols.width, max(len(self._rows), self.size.height))
        if isinstance(self.parent, GanttChart):
            self.parent.sync_header()

    def watch_scroll_x(self, old: float, new: float) -> None:
        self.post_message(self.ScrollXChanged(new))

    def watch_scroll_y(self, old: float, new: float) -> None:
        self.post_message(self.ScrollYChanged(new))

    # ── Gestures ──

    def row_at(self, row: int) -> Task | None:
        if 0 <= row < len(self._rows):
            return self._rows[row][0]
        return None

    def press(self, x: int, row: int) -> bool:
        """Start a gesture at chart column *x* on *row*.

        The first and last cell of a bar at least three cells wide resize
        it; anywhere else on the bar drags it. An unscheduled row starts a
        new range. Returns True if a gesture began.
        """
        # A release lost outside the terminal leaves the last gesture open
        self.cancel_gesture()
        task = self.row_at(row)
        if task is None:
            return False
        self.post_message(self.TaskSelected(task.id))
        span = task_span(self._cols.window.start, task)
        if span is None:
            self.controller.begin_create(task, x)
        else:
            cw = self._cols.day_width
            left, right = span[0] * cw, (span[1] + 1) * cw
            if not left <= x < right:
                return False
            if right - left >= 3 and x == left:
                self.controller.begin_resize(task, "start", x)
            elif right - left >= 3 and x == right - 1:
                self.controller.begin_resize(task, "end", x)
            else:
                self.controller.begin_drag(task, x)
        self.controller.update_pointer(x)
        self.refresh()
        return True

    def drag_to(self, x: int) -> PreviewGeometry | None:
        if not self.controller.active:
            return None
        preview = self.controller.update_pointer(x)
        self.refresh()
        return preview

    def release(self, x: int) -> list[Task]:
        if not self.controller.active:
            return []
        updates = self.controller.commit(x)
        if updates:
            self.post_message(self.ScheduleCommitted(updates))
        self._apply_pending_window()
        self.refresh()
        return updates

    def cancel_gesture(self) -> None:
        if self.controller.active:
            self.controller.cancel()
            self._apply_pending_window()
            self.refresh()

    def _chart_x(self, event: events.MouseEvent) -> int:
        return event.x + int(self.scroll_offset.x)

    def on_mouse_down(self, event: events.MouseDown) -> None:
        if event.button != 1:
            return
        row = event.y + int(self.scroll_offset.y)
        if self.press(self._chart_x(event), row):
            self.capture_mouse()
            event.stop()

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if self.controller.active:
            self.drag_to(self._chart_x(event))
            event.stop()

    def on_mouse_up(self, event: events.MouseUp) -> None:
        if self.controller.active:
            self.release(self._chart_x(event))
            self.release_mouse()
            event.stop()

    def on_mouse_release(self, event: events.MouseRelease) -> None:
        # Capture lost before the button came up
        self.cancel_gesture()

    # ── Rendering ──

    def render_line(self, y: int) -> Strip:
        width = max(self.size.width, self._cols.width)
        scroll_x = int(self.scroll_offset.x)
        # ScrollView doesn't offset y automatically
        virtual_y = y + int(self.scroll_offset.y)

        if not self._rows:
            if y == 0:
                text = Text("  No tasks yet. Press A to add one.", style="dim")
                return Strip(text.render(self.app.console)).crop(0, self.size.width)
            return Strip.blank(self.size.width)

        if virtual_y >= len(self._rows):
            dark = self._is_dark
            base = Style(bgcolor=theme.GANTT_BASE_BG.resolve(dark))
            full = Strip([Segment(" ", self._background(self._cols, c, base)) for c in range(width)])
        else:
            task, _ = self._rows[virtual_y]
            full = self._render_bar(task, width, virtual_y)
        return full.crop(scroll_x, scroll_x + self.size.width)

    def _bar_cols(self, task: Task) -> tuple[int, int, bool] | None:
        """Left/right (exclusive) columns of a task's bar, and whether it is a preview."""
        cw = self._cols.day_width
        preview = self.controller.preview
        if preview is not None and preview.task_id == task.id:
            return preview.start_index * cw, (preview.end_index + 1) * cw, True
        span = task_span(self._cols.window.start, task)
        if span is None:
            return None
        return span[0] * cw, (span[1] + 1) * cw, False

    def _render_bar(self, task: Task, width: int, row_y: int) -> Strip:
        dark = self._is_dark
        if row_y == self._highlighted_row:
            base = Style(bgcolor=theme.GANTT_HIGHLIGHT_BG.resolve(dark))
        elif row_y % 2 == 1:
            base = Style(bgcolor=theme.GANTT_BAND_BG.resolve(dark))
        else:
            base = Style(bgcolor=theme.GANTT_BASE_BG.resolve(dark))
        today_col = self._cols.col(self._today)
        today_style = Style(color=theme.GANTT_TODAY_MARKER.resolve(dark))

        bar = self._bar_cols(task)
        summary: tuple[int, int] | None = None
        if bar is None and task.subtasks:
            enclosing = enclosing_range(task)
            if enclosing is not None:
                summary = (
                    self._cols.col(enclosing[0]),
                    self._cols.col(enclosing[1]) + self._cols.day_width,
                )

        if bar is not None:
            left, right, is_preview = bar
            if is_preview:
                bar_style = Style(color=theme.GANTT_PREVIEW.resolve(dark), bold=True)
                glyph = "▓"
            elif task.completed:
                bar_style = Style(color=theme.GANTT_BAR_DONE.resolve(dark))
                glyph = "█"
            else:
                bar_style = Style(color=theme.GANTT_BAR_OPEN.resolve(dark))
                glyph = "█"

        segments: list[Segment] = []
        for c in range(width):
            bg = base if row_y == self._highlighted_row else self._background(self._cols, c, base)
            if bar is not None and left <= c < right:
                segments.append(Segment(glyph, bar_style + bg))
            elif summary is not None and summary[0] <= c < summary[1]:
                segments.append(Segment("╌", Style(color=theme.GANTT_SUMMARY.resolve(dark)) + bg))
            elif c == today_col:
                segments.append(Segment("│", today_style + bg))
            else:
                segments.append(Segment(" ", bg))
        return Strip(segments)


class GanttChart(Container):
    """Header and bar view for the flattened task rows."""

    DEFAULT_CSS = """
    GanttChart {
        width: 1fr;
        height: 1fr;
    }
    GanttChart #gantt-header {
        height: 3;
    }
    GanttChart #gantt-view {
        height: 1fr;
    }
    """

    def compose(self) -> ComposeResult:
        yield GanttHeader(id="gantt-header")
        yield GanttView(id="gantt-view")

    @property
    def view(self) -> GanttView:
        return self.query_one("#gantt-view", GanttView)

    def update_chart(
        self,
        rows: list[tuple[Task, int]],
        window: ChartWindow,
        day_width: int,
        today: date,
        holidays: set[date],
        highlighted_row: int = -1,
    ) -> None:
        self.view.update_gantt(rows, window, day_width, today, holidays, highlighted_row)
        self.sync_header()

    def sync_header(self) -> None:
        view = self.view
        self.query_one("#gantt-header", GanttHeader).update_header(view.columns, view.today)

    def on_gantt_view_scroll_x_changed(self, event: GanttView.ScrollXChanged) -> None:
        header = self.query_one("#gantt-header", GanttHeader)
        header.scroll_x_offset = int(event.scroll_x)
        header.refresh()
