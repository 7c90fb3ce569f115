"""Form for editing one task's own fields."""

from __future__ import annotations

from dataclasses import replace
from datetime import date as date_cls

from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, Input, Static, TextArea

from tui_planner.models import Task


class TaskEditScreen(ModalScreen[Task | None]):
    """Modal form for a task's name, completion, dates and description.

    Dismisses with the edited task (subtasks untouched), or None when
    cancelled.
    """

    BINDINGS = [("escape", "cancel", "Cancel")]

    DEFAULT_CSS = """
    TaskEditScreen {
        align: center middle;
    }
    #task-edit-container {
        width: 64;
        max-height: 85%;
        background: $surface;
        border: thick $primary;
        padding: 1 2;
    }
    #task-edit-title {
        text-style: bold;
        margin-bottom: 1;
    }
    .field-label {
        margin-top: 1;
        color: $text-muted;
    }
    #field-description {
        height: 5;
    }
    #task-edit-buttons {
        align: center middle;
        height: 3;
        margin-top: 1;
    }
    #task-edit-buttons Button {
        margin: 0 1;
    }
    """

    def __init__(self, task: Task, title: str = "Edit Task") -> None:
        super().__init__()
        self._edit_task = task
        self._title = title

    def compose(self) -> ComposeResult:
        task = self._edit_task
        with VerticalScroll(id="task-edit-container"):
            yield Static(f"[bold]{self._title}[/bold]", id="task-edit-title")

            yield Static("Name", classes="field-label")
            yield Input(value=task.name, id="field-name")

            yield Checkbox("Completed", value=task.completed, id="field-completed")

            yield Static("Start Date", classes="field-label")
            yield Input(
                value=task.start_date.isoformat() if task.start_date else "",
                placeholder="YYYY-MM-DD",
                id="field-start",
            )

            yield Static("End Date", classes="field-label")
            yield Input(
                value=task.end_date.isoformat() if task.end_date else "",
                placeholder="YYYY-MM-DD",
                id="field-end",
            )

            yield Static("Description", classes="field-label")
            yield TextArea(task.description, id="field-description")

            with Horizontal(id="task-edit-buttons"):
                yield Button("Save", variant="primary", id="save-btn")
                yield Button("Cancel", variant="default", id="cancel-btn")

    def on_mount(self) -> None:
        self.query_one("#field-name", Input).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-btn":
            self._submit()
        else:
            self.dismiss(None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._submit()

    def _submit(self) -> None:
        edited = self._collect()
        if edited is None:
            return  # validation error shown
        self.dismiss(edited)

    def _parse_date(self, field_id: str, label: str) -> tuple[bool, date_cls | None]:
        raw = self.query_one(field_id, Input).value.strip()
        if not raw:
            return True, None
        try:
            return True, date_cls.fromisoformat(raw)
        except ValueError:
            self.notify(f"Invalid {label} date (use YYYY-MM-DD)", severity="error")
            return False, None

    def _collect(self) -> Task | None:
        """Build the edited task. Returns None on validation error."""
        name = self.query_one("#field-name", Input).value.strip()
        if not name:
            self.notify("Name cannot be empty", severity="error")
            return None

        ok, start = self._parse_date("#field-start", "start")
        if not ok:
            return None
        ok, end = self._parse_date("#field-end", "end")
        if not ok:
            return None
        if (start is None) != (end is None):
            self.notify("Give both dates or neither", severity="error")
            return None
        if start and end and start > end:
            self.notify("Start date is after end date", severity="error")
            return None

        return replace(
            self._edit_task,
            name=name,
            completed=self.query_one("#field-completed", Checkbox).value,
            start_date=start,
            end_date=end,
            description=self.query_one("#field-description", TextArea).text,
        )

    def action_cancel(self) -> None:
        self.dismiss(None)
