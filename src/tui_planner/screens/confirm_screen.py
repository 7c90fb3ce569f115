"""Yes/no confirmation before destructive tree edits."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Static

from tui_planner.models import Task


class ConfirmScreen(ModalScreen[bool]):
    """A simple yes/no confirmation modal."""

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
        ("y", "confirm", "Yes"),
        ("n", "cancel", "No"),
    ]

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }
    #confirm-container {
        width: 56;
        height: auto;
        background: $surface;
        border: thick $error;
        padding: 1 2;
    }
    #confirm-message {
        margin-bottom: 1;
    }
    #confirm-buttons {
        align: center middle;
        height: 3;
    }
    #confirm-buttons Button {
        margin: 0 1;
    }
    """

    def __init__(self, message: str, confirm_label: str = "Yes") -> None:
        super().__init__()
        self.message = message
        self.confirm_label = confirm_label

    @classmethod
    def for_delete(cls, task: Task) -> ConfirmScreen:
        """Dialog asking to delete *task*, mentioning how much goes with it."""
        below = len(task.all_tasks()) - 1
        message = f"Delete '{task.name}'?"
        if below:
            noun = "subtask" if below == 1 else "subtasks"
            message += f"\n{below} {noun} will be deleted with it."
        return cls(message, confirm_label="Delete")

    def compose(self) -> ComposeResult:
        with Static(id="confirm-container"):
            yield Static(self.message, id="confirm-message")
            with Horizontal(id="confirm-buttons"):
                yield Button(self.confirm_label, variant="error", id="yes-btn")
                yield Button("Cancel", variant="primary", id="no-btn")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes-btn")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)
