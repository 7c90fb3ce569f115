"""Exception hierarchy for TUI Planner."""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for all planner errors."""


class InvalidTreeError(PlannerError):
    """A stored document could not be interpreted as a task tree."""


class ReparentCycleError(PlannerError):
    """Moving a task under itself or one of its own descendants."""

    def __init__(self, task_id: str, new_parent_id: str) -> None:
        super().__init__(
            f"cannot move task {task_id!r} under {new_parent_id!r}: "
            "target is the task itself or one of its descendants"
        )
        self.task_id = task_id
        self.new_parent_id = new_parent_id


class GestureError(PlannerError):
    """A gesture event arrived in a state that cannot accept it."""


class GestureInProgressError(GestureError):
    """A new gesture was started while another one is still active."""


class StoreError(PlannerError):
    """The persistence collaborator failed to load or save a tree."""


class StoreLockedError(StoreError):
    """The store directory is locked by another live process."""
