"""Main Textual App for TUI Planner."""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from datetime import date
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header, Static

from tui_planner import theme
from tui_planner import tree as tree_ops
from tui_planner.config import get_holidays, load_config, load_settings, store_dir
from tui_planner.errors import PlannerError, StoreError, StoreLockedError
from tui_planner.models import DEFAULT_TASK_NAME, ProjectConfig, Task, format_date
from tui_planner.screens.confirm_screen import ConfirmScreen
from tui_planner.screens.task_edit_screen import TaskEditScreen
from tui_planner.store import JsonFileStore, TreeStore
from tui_planner.sync import SyncAdapter
from tui_planner.timeline import chart_window, zoom_in, zoom_out
from tui_planner.widgets.gantt_chart import GanttChart, GanttView
from tui_planner.widgets.task_list import TaskList, TaskRows

logger = logging.getLogger(__name__)


class PlannerApp(App):
    """TUI Planner Application."""

    TITLE = "TUI Planner"
    CSS = """
    #main-content {
        height: 1fr;
        border: round $surface-lighten-2;
    }
    #main-content:focus-within {
        border: round $accent;
    }
    #status-bar {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $primary-background;
        color: $text;
    }
    """

    BINDINGS = [
        Binding("q", "quit_app", "Quit"),
        Binding("space", "toggle_complete", "Done/Open"),
        Binding("a", "add_subtask", "Add subtask"),
        Binding("A", "add_task", "Add task"),
        Binding("e", "edit_task", "Edit"),
        Binding("enter", "edit_task", "Edit", show=False),
        Binding("d", "delete_task", "Delete"),
        Binding("left_square_bracket", "outdent", "Outdent", show=False),
        Binding("right_square_bracket", "indent", "Indent", show=False),
        Binding("plus", "zoom_in", "Zoom in", show=False),
        Binding("minus", "zoom_out", "Zoom out", show=False),
        Binding("t", "scroll_today", "Today", show=False),
        Binding("escape", "cancel_gesture", "Cancel drag", show=False),
        Binding("up,k", "cursor_up", "Up", show=False),
        Binding("down,j", "cursor_down", "Down", show=False),
    ]

    def __init__(
        self,
        project_dir: Path,
        owner_id: str | None = None,
        store: TreeStore | None = None,
        no_color: bool = False,
        today: date | None = None,
    ) -> None:
        if no_color:
            os.environ["NO_COLOR"] = "1"
        super().__init__()
        self.project_dir = project_dir
        self.config: ProjectConfig = ProjectConfig()
        self.store: TreeStore | None = store
        self.sync: SyncAdapter | None = None
        self.today = today or date.today()
        self.day_width = self.config.day_width
        self._owner_override = owner_id
        self._owns_store = store is None
        self._holidays: set[date] = set()
        self._rows: list[tuple[Task, int]] = []
        self._cursor = 0
        self._cursor_id: str | None = None
        self._scroll_syncing = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-content"):
            yield TaskList()
            yield GanttChart()
        yield Static("", id="status-bar")
        yield Footer()

    async def on_mount(self) -> None:
        self.config = load_config(self.project_dir)
        settings = load_settings(self.project_dir)
        theme.apply_settings(settings)
        self._holidays = set(get_holidays(settings))
        self.day_width = self.config.day_width
        owner_id = self._owner_override or self.config.owner_id

        if self.store is None:
            file_store = JsonFileStore(store_dir(self.project_dir, self.config))
            try:
                file_store.open()
            except StoreLockedError as e:
                self.exit(return_code=1, message=str(e))
                return
            self.store = file_store

        self.sync = SyncAdapter(
            self.store,
            owner_id,
            on_error=self._on_sync_error,
            on_change=self._on_tree_changed,
        )
        try:
            await self.sync.load()
        except PlannerError as e:
            logger.error("initial load failed: %s", e)
            self.notify(f"Could not load tasks: {e}", severity="error")

        if isinstance(self.store, JsonFileStore):
            warnings = self.store.warnings.get(owner_id, [])
            if warnings:
                self.notify(
                    f"{len(warnings)} problem(s) repaired while loading; see the log",
                    severity="warning",
                )
            interval = float(settings.get("poll_interval", 2.0) or 2.0)
            self.set_interval(interval, self._poll_store)

        self.title = f"TUI Planner - {self.config.name or self.project_dir.name}"
        self._refresh_ui()

    # ── Sync callbacks ──

    def _on_tree_changed(self, tree: tuple[Task, ...]) -> None:
        self._refresh_ui()

    def _on_sync_error(self, message: str, exc: Exception) -> None:
        self.notify(message, severity="error", timeout=6)

    async def _poll_store(self) -> None:
        if not isinstance(self.store, JsonFileStore):
            return
        try:
            await self.store.poll()
        except StoreError as e:
            logger.warning("poll failed: %s", e)

    # ── UI Refresh ──

    @property
    def tree(self) -> tuple[Task, ...]:
        return self.sync.tree if self.sync else ()

    @property
    def current_task(self) -> Task | None:
        if 0 <= self._cursor < len(self._rows):
            return self._rows[self._cursor][0]
        return None

    def _refresh_ui(self) -> None:
        tree = self.tree
        self._rows = list(tree_ops.iter_with_depth(tree))
        ids = [task.id for task, _ in self._rows]
        if self._cursor_id in ids:
            self._cursor = ids.index(self._cursor_id)
        else:
            self._cursor = max(0, min(self._cursor, len(ids) - 1))
        self._cursor_id = ids[self._cursor] if ids else None
        highlighted = self._cursor if ids else -1

        try:
            task_list = self.query_one(TaskList)
            gantt = self.query_one(GanttChart)
        except Exception:
            return
        task_list.update_list(
            self._rows,
            tree_ops.calculate_progress(tree),
            title=self.config.name or "Tasks",
            highlighted_row=highlighted,
        )
        gantt.update_chart(
            self._rows,
            chart_window(tree, self.today),
            self.day_width,
            self.today,
            self._holidays,
            highlighted_row=highlighted,
        )
        self._update_status_bar()

    def _update_status_bar(self) -> None:
        task = self.current_task
        parts = [f"Today {format_date(self.today, self.config.date_format)}", f"zoom {self.day_width}"]
        if task is not None and task.is_scheduled:
            parts.append(
                f"{task.name}: {format_date(task.start_date, self.config.date_format)}"
                f" → {format_date(task.end_date, self.config.date_format)}"
                f" ({task.duration_days}d)"
            )
        elif task is not None:
            parts.append(f"{task.name}: unscheduled, drag on its row to set dates")
        try:
            self.query_one("#status-bar", Static).update("  │  ".join(parts))
        except Exception:
            pass

    def _select(self, task_id: str) -> None:
        self._cursor_id = task_id
        self._refresh_ui()

    # ── Cursor ──

    def _move_cursor(self, delta: int) -> None:
        if not self._rows:
            return
        self._cursor = max(0, min(len(self._rows) - 1, self._cursor + delta))
        self._cursor_id = self._rows[self._cursor][0].id
        self._refresh_ui()
        # Keep the cursor row visible
        rows = self.query_one(TaskList).rows
        top = int(rows.scroll_offset.y)
        if self._cursor < top:
            rows.scroll_to(y=self._cursor, animate=False)
        elif self._cursor >= top + rows.size.height:
            rows.scroll_to(y=self._cursor - rows.size.height + 1, animate=False)

    def action_cursor_up(self) -> None:
        self._move_cursor(-1)

    def action_cursor_down(self) -> None:
        self._move_cursor(1)

    # ── Task actions ──

    def action_toggle_complete(self) -> None:
        task = self.current_task
        if task is None or self.sync is None:
            return
        self.sync.update(replace(task, completed=not task.completed))

    def action_add_task(self) -> None:
        if self.sync is None:
            return
        self.push_screen(
            TaskEditScreen(Task(DEFAULT_TASK_NAME), title="New Task"),
            callback=self._on_new_task,
        )

    def _on_new_task(self, task: Task | None) -> None:
        if task is None or self.sync is None:
            return
        self._cursor_id = task.id
        self.sync.add_task(task)

    def action_add_subtask(self) -> None:
        parent = self.current_task
        if parent is None:
            self.action_add_task()
            return
        if self.sync is None:
            return
        self.push_screen(
            TaskEditScreen(Task(DEFAULT_TASK_NAME), title=f"New Subtask of {parent.name}"),
            callback=lambda task: self._on_new_subtask(parent.id, task),
        )

    def _on_new_subtask(self, parent_id: str, task: Task | None) -> None:
        if task is None or self.sync is None:
            return
        self._cursor_id = task.id
        self.sync.add_subtask(parent_id, task)

    def action_edit_task(self) -> None:
        task = self.current_task
        if task is None:
            return
        self.push_screen(TaskEditScreen(task), callback=self._on_task_edited)

    def _on_task_edited(self, edited: Task | None) -> None:
        if edited is None or self.sync is None:
            return
        self.sync.update(edited)

    def action_delete_task(self) -> None:
        task = self.current_task
        if task is None:
            return
        self.push_screen(
            ConfirmScreen.for_delete(task),
            callback=lambda confirmed: self._on_delete_confirmed(task.id, confirmed),
        )

    def _on_delete_confirmed(self, task_id: str, confirmed: bool) -> None:
        if confirmed and self.sync is not None:
            self.sync.delete(task_id)

    def action_indent(self) -> None:
        task = self.current_task
        if task is not None and self.sync is not None:
            self.sync.indent(task.id)

    def action_outdent(self) -> None:
        task = self.current_task
        if task is not None and self.sync is not None:
            self.sync.outdent(task.id)

    # ── Chart ──

    def _set_day_width(self, width: float) -> None:
        new_width = max(1, round(width))
        if new_width != self.day_width:
            self.day_width = new_width
            self._refresh_ui()

    def action_zoom_in(self) -> None:
        self._set_day_width(
            zoom_in(self.day_width, self.config.min_day_width, self.config.max_day_width)
        )

    def action_zoom_out(self) -> None:
        self._set_day_width(
            zoom_out(self.day_width, self.config.min_day_width, self.config.max_day_width)
        )

    def action_scroll_today(self) -> None:
        view = self.query_one(GanttChart).view
        view.scroll_to(x=max(0, view.columns.col(self.today) - 2), animate=False)

    def action_cancel_gesture(self) -> None:
        self.query_one(GanttChart).view.cancel_gesture()

    def on_gantt_view_schedule_committed(self, event: GanttView.ScheduleCommitted) -> None:
        if self.sync is not None:
            self.sync.update_many(event.updates)

    def on_gantt_view_task_selected(self, event: GanttView.TaskSelected) -> None:
        self._select(event.task_id)

    def on_task_rows_task_selected(self, event: TaskRows.TaskSelected) -> None:
        self._select(event.task_id)

    # ── Scroll sync ──

    def _reset_scroll_syncing(self) -> None:
        self._scroll_syncing = False

    def on_task_rows_scroll_y_changed(self, event: TaskRows.ScrollYChanged) -> None:
        if self._scroll_syncing:
            return
        self._scroll_syncing = True
        self.query_one(GanttChart).view.scroll_y = event.scroll_y
        # Delay flag reset so bounce-back messages are caught
        self.set_timer(0.05, self._reset_scroll_syncing)

    def on_gantt_view_scroll_y_changed(self, event: GanttView.ScrollYChanged) -> None:
        if self._scroll_syncing:
            return
        self._scroll_syncing = True
        self.query_one(TaskList).rows.scroll_y = event.scroll_y
        self.set_timer(0.05, self._reset_scroll_syncing)

    # ── Quit ──

    async def action_quit_app(self) -> None:
        await self.shutdown()
        self.exit()

    async def shutdown(self) -> None:
        """Wait for in-flight saves, then release the store."""
        if self.sync is not None:
            await self.sync.drain()
            self.sync.close()
        if self._owns_store and isinstance(self.store, JsonFileStore):
            self.store.close()
