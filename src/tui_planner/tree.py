"""Pure mutation and query functions over task trees.

Every mutation returns a new tree and leaves its input untouched. Only the
path from the root to the changed task is rebuilt; untouched subtrees are
shared with the input. When nothing matches (an unknown id, a missing
parent), the input tree object itself is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import replace
from datetime import date

from tui_planner.errors import ReparentCycleError
from tui_planner.models import Progress, Task, TaskTree

logger = logging.getLogger(__name__)


# ── Queries ──


def iter_tasks(tree: Sequence[Task]) -> Iterator[Task]:
    """Yield every task in pre-order."""
    for task in tree:
        yield task
        yield from iter_tasks(task.subtasks)


def iter_with_depth(tree: Sequence[Task], depth: int = 0) -> Iterator[tuple[Task, int]]:
    """Yield (task, depth) pairs in pre-order; top-level tasks have depth 0."""
    for task in tree:
        yield task, depth
        yield from iter_with_depth(task.subtasks, depth + 1)


def collect_ids(tree: Sequence[Task]) -> set[str]:
    return {task.id for task in iter_tasks(tree)}


def duplicate_ids(tree: Sequence[Task]) -> set[str]:
    """Ids that occur more than once anywhere in the tree."""
    seen: set[str] = set()
    dupes: set[str] = set()
    for task in iter_tasks(tree):
        if task.id in seen:
            dupes.add(task.id)
        seen.add(task.id)
    return dupes


def find_task(tree: Sequence[Task], task_id: str) -> Task | None:
    """Find a task by id at any depth."""
    for task in iter_tasks(tree):
        if task.id == task_id:
            return task
    return None


def build_parent_map(tree: Sequence[Task]) -> dict[str, str | None]:
    """Map every task id to its parent id (None for top-level tasks)."""
    parents: dict[str, str | None] = {}

    def _walk(tasks: Sequence[Task], parent_id: str | None) -> None:
        for task in tasks:
            parents[task.id] = parent_id
            _walk(task.subtasks, task.id)

    _walk(tree, None)
    return parents


def find_parent_id(tree: Sequence[Task], task_id: str) -> str | None:
    """Return the parent id of a task, or None if it is top-level or missing."""
    return build_parent_map(tree).get(task_id)


def is_descendant(tree: Sequence[Task], ancestor_id: str, task_id: str) -> bool:
    """True if *task_id* lies strictly below *ancestor_id*."""
    ancestor = find_task(tree, ancestor_id)
    if ancestor is None:
        return False
    return any(t.id == task_id for t in iter_tasks(ancestor.subtasks))


def enclosing_range(task: Task) -> tuple[date, date] | None:
    """Min start / max end over the task's descendants.

    Used for display only; a parent's own dates are never forced to match.
    """
    starts = [t.start_date for t in iter_tasks(task.subtasks) if t.start_date]
    ends = [t.end_date for t in iter_tasks(task.subtasks) if t.end_date]
    if not starts or not ends:
        return None
    return min(starts), max(ends)


def calculate_progress(tree: Sequence[Task]) -> Progress:
    """Count every task once; a task is completed by its own flag only."""
    completed = 0
    total = 0
    for task in iter_tasks(tree):
        total += 1
        if task.completed:
            completed += 1
    return Progress(completed, total)


# ── Mutations ──


def _replace_in(
    tasks: Sequence[Task], target_id: str, replacement: Task
) -> Sequence[Task]:
    result: list[Task] = []
    changed = False
    for task in tasks:
        if task.id == target_id:
            result.append(replacement)
            changed = True
            continue
        new_children = _replace_in(task.subtasks, target_id, replacement)
        if new_children is not task.subtasks:
            result.append(replace(task, subtasks=tuple(new_children)))
            changed = True
        else:
            result.append(task)
    return tuple(result) if changed else tasks


def update_task_in_tree(tree: Sequence[Task], updated: Task) -> TaskTree:
    """Replace the task with ``updated.id`` wholesale, subtasks included."""
    result = _replace_in(tree, updated.id, updated)
    if result is tree:
        logger.debug("update: task %s not found", updated.id)
    return result  # type: ignore[return-value]


def update_tasks_in_tree(tree: Sequence[Task], updates: Iterable[Task]) -> TaskTree:
    """Apply many updates in one traversal.

    A matched task takes its own fields from the update, but its subtasks
    come from the recursively updated children, never from the update
    object. Unknown ids are ignored; for a repeated id the last update wins.
    """
    updates_map = {task.id: task for task in updates}
    if not updates_map:
        return tree  # type: ignore[return-value]

    def _walk(tasks: Sequence[Task]) -> Sequence[Task]:
        result: list[Task] = []
        changed = False
        for task in tasks:
            new_children = _walk(task.subtasks)
            update = updates_map.get(task.id)
            if update is not None:
                result.append(replace(update, subtasks=tuple(new_children)))
                changed = True
            elif new_children is not task.subtasks:
                result.append(replace(task, subtasks=tuple(new_children)))
                changed = True
            else:
                result.append(task)
        return tuple(result) if changed else tasks

    return _walk(tree)  # type: ignore[return-value]


def _remove_from(tasks: Sequence[Task], target_id: str) -> tuple[Task | None, Sequence[Task]]:
    for i, task in enumerate(tasks):
        if task.id == target_id:
            return task, (*tasks[:i], *tasks[i + 1:])
        found, new_children = _remove_from(task.subtasks, target_id)
        if found is not None:
            new_task = replace(task, subtasks=tuple(new_children))
            return found, (*tasks[:i], new_task, *tasks[i + 1:])
    return None, tasks


def find_and_remove_task(tree: Sequence[Task], task_id: str) -> tuple[Task | None, TaskTree]:
    """Detach a task with its subtree.

    Returns the removed task (or None) and the remaining tree.
    """
    found, remaining = _remove_from(tree, task_id)
    return found, remaining  # type: ignore[return-value]


def delete_task_from_tree(tree: Sequence[Task], task_id: str) -> TaskTree:
    """Remove a task and its entire subtree."""
    found, remaining = _remove_from(tree, task_id)
    if found is None:
        logger.debug("delete: task %s not found", task_id)
    return remaining  # type: ignore[return-value]


def _append_child(tasks: Sequence[Task], parent_id: str, new_task: Task) -> Sequence[Task]:
    result: list[Task] = []
    changed = False
    for task in tasks:
        if task.id == parent_id:
            result.append(task.with_subtask(new_task))
            changed = True
            continue
        new_children = _append_child(task.subtasks, parent_id, new_task)
        if new_children is not task.subtasks:
            result.append(replace(task, subtasks=tuple(new_children)))
            changed = True
        else:
            result.append(task)
    return tuple(result) if changed else tasks


def add_subtask_to_tree(tree: Sequence[Task], parent_id: str, new_task: Task) -> TaskTree:
    """Append *new_task* as the last subtask of *parent_id*.

    An unknown parent leaves the tree unchanged.
    """
    result = _append_child(tree, parent_id, new_task)
    if result is tree:
        logger.debug("add subtask: parent %s not found", parent_id)
    return result  # type: ignore[return-value]


def add_task_to_tree(tree: Sequence[Task], new_task: Task) -> TaskTree:
    """Append a new top-level task."""
    return (*tree, new_task)


def check_reparent(tree: Sequence[Task], task_id: str, new_parent_id: str | None) -> None:
    """Raise ReparentCycleError if the move would put a task under itself."""
    if new_parent_id is None:
        return
    if new_parent_id == task_id or is_descendant(tree, task_id, new_parent_id):
        raise ReparentCycleError(task_id, new_parent_id)


def reparent_task(tree: Sequence[Task], task_id: str, new_parent_id: str | None) -> TaskTree:
    """Move a task with its subtree to the end of another parent's subtasks.

    ``new_parent_id=None`` moves it to the top level. Unknown ids and moves
    under the task's own subtree leave the tree unchanged.
    """
    try:
        check_reparent(tree, task_id, new_parent_id)
    except ReparentCycleError as e:
        logger.warning("reparent rejected: %s", e)
        return tree  # type: ignore[return-value]
    if new_parent_id is not None and find_task(tree, new_parent_id) is None:
        logger.debug("reparent: new parent %s not found", new_parent_id)
        return tree  # type: ignore[return-value]
    found, remaining = find_and_remove_task(tree, task_id)
    if found is None:
        logger.debug("reparent: task %s not found", task_id)
        return tree  # type: ignore[return-value]
    if new_parent_id is None:
        return add_task_to_tree(remaining, found)
    return add_subtask_to_tree(remaining, new_parent_id, found)


def _siblings_of(tree: Sequence[Task], task_id: str) -> Sequence[Task]:
    parent_id = find_parent_id(tree, task_id)
    if parent_id is None:
        return tree
    parent = find_task(tree, parent_id)
    return parent.subtasks if parent else ()


def indent_task(tree: Sequence[Task], task_id: str) -> TaskTree:
    """Make a task the last subtask of its previous sibling."""
    siblings = _siblings_of(tree, task_id)
    ids = [t.id for t in siblings]
    if task_id not in ids or ids.index(task_id) == 0:
        return tree  # type: ignore[return-value]
    return reparent_task(tree, task_id, ids[ids.index(task_id) - 1])


def outdent_task(tree: Sequence[Task], task_id: str) -> TaskTree:
    """Move a task up one level, to the end of its grandparent's subtasks."""
    parents = build_parent_map(tree)
    parent_id = parents.get(task_id)
    if parent_id is None:
        return tree  # type: ignore[return-value]
    return reparent_task(tree, task_id, parents.get(parent_id))


def move_task_between_trees(
    source: Sequence[Task], target: Sequence[Task], task_id: str
) -> tuple[TaskTree, TaskTree]:
    """Detach a task from one tree and append it to another's top level."""
    found, remaining = find_and_remove_task(source, task_id)
    if found is None:
        return source, target  # type: ignore[return-value]
    return remaining, add_task_to_tree(target, found)


# ── Facade used by the views ──

apply_update = update_task_in_tree
apply_batch_update = update_tasks_in_tree
apply_delete = delete_task_from_tree
apply_add_subtask = add_subtask_to_tree
apply_reparent = reparent_task
progress = calculate_progress
