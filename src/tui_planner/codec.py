"""Conversion between task trees and JSON-compatible documents.

Documents use the camelCase keys of the hosted store (``startDate``,
``imageUrl``, ...). Reading is forgiving: recoverable problems become
IngestWarnings and the tree is repaired, so that a hand-edited or remotely
corrupted document never takes the app down.
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any

from tui_planner.errors import InvalidTreeError
from tui_planner.models import DEFAULT_TASK_NAME, IngestWarning, Task, TaskTree, new_task_id


def task_to_dict(task: Task) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": task.id,
        "name": task.name,
        "completed": task.completed,
        "description": task.description,
        "subtasks": [task_to_dict(t) for t in task.subtasks],
    }
    if task.start_date:
        d["startDate"] = task.start_date.isoformat()
    if task.end_date:
        d["endDate"] = task.end_date.isoformat()
    if task.dependencies:
        d["dependencies"] = list(task.dependencies)
    if task.image_url:
        d["imageUrl"] = task.image_url
    return d


def tree_to_data(tree: TaskTree) -> list[dict[str, Any]]:
    return [task_to_dict(t) for t in tree]


def _parse_date(value: Any) -> date | None:
    if value in (None, ""):
        return None
    # Timestamps like 2024-08-01T00:00:00Z keep only their civil date
    return date.fromisoformat(str(value)[:10])


class _Reader:
    def __init__(self) -> None:
        self.warnings: list[IngestWarning] = []
        self.seen_ids: set[str] = set()

    def warn(self, path: str, message: str) -> None:
        self.warnings.append(IngestWarning(path, message))

    def read_list(self, items: Any, path: str) -> TaskTree:
        if items is None:
            return ()
        if not isinstance(items, list):
            self.warn(path, f"expected a list of tasks, got {type(items).__name__}")
            return ()
        result: list[Task] = []
        for i, item in enumerate(items):
            item_path = f"{path}[{i}]"
            if not isinstance(item, dict):
                self.warn(item_path, "not a task object; skipped")
                continue
            result.append(self.read_task(item, item_path))
        return tuple(result)

    def read_task(self, data: dict[str, Any], path: str) -> Task:
        task_id = data.get("id")
        if not isinstance(task_id, str) or not task_id:
            task_id = new_task_id()
            self.warn(path, f"missing id; assigned {task_id}")
        elif task_id in self.seen_ids:
            new_id = new_task_id()
            self.warn(path, f"duplicate id {task_id}; reassigned {new_id}")
            task_id = new_id
        self.seen_ids.add(task_id)

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            self.warn(path, f"blank name; using {DEFAULT_TASK_NAME!r}")
            name = DEFAULT_TASK_NAME

        start = self._read_date(data, "startDate", path)
        end = self._read_date(data, "endDate", path)
        if start and end and start > end:
            self.warn(path, f"start {start} after end {end}; swapped")
            start, end = end, start

        deps = data.get("dependencies") or []
        if not isinstance(deps, list):
            self.warn(path, "dependencies is not a list; dropped")
            deps = []

        image_url = data.get("imageUrl")
        return Task(
            id=task_id,
            name=name,
            completed=bool(data.get("completed", False)),
            description=str(data.get("description") or ""),
            subtasks=self.read_list(data.get("subtasks"), f"{path}.subtasks"),
            start_date=start,
            end_date=end,
            dependencies=tuple(str(d) for d in deps),
            image_url=str(image_url) if image_url else None,
        )

    def _read_date(self, data: dict[str, Any], key: str, path: str) -> date | None:
        try:
            return _parse_date(data.get(key))
        except ValueError:
            self.warn(path, f"invalid {key} {data.get(key)!r}; dropped")
            return None


def tree_from_data(data: Any) -> tuple[TaskTree, list[IngestWarning]]:
    """Build a tree from a decoded document.

    Accepts a list of tasks or an object with a ``tasks`` list. Raises
    InvalidTreeError for anything else.
    """
    if isinstance(data, dict) and "tasks" in data:
        data = data["tasks"]
    if not isinstance(data, list):
        raise InvalidTreeError(f"expected a list of tasks, got {type(data).__name__}")
    reader = _Reader()
    tree = reader.read_list(data, "tasks")
    return tree, reader.warnings


def dumps_tree(tree: TaskTree) -> str:
    return json.dumps({"tasks": tree_to_data(tree)}, indent=2, ensure_ascii=False)


def loads_tree(text: str) -> tuple[TaskTree, list[IngestWarning]]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidTreeError(f"not valid JSON: {e}") from e
    return tree_from_data(data)
