"""Optimistic local mutation with asynchronous persistence.

The adapter owns the authoritative local copy of one owner's tree. A
mutation is applied locally at once, then saved in the background. Each
mutation is recorded as a PendingMutation holding the tree before and after
it and the local version it produced; when a save fails, the old tree is
restored only if no newer local mutation has happened since (compare and
swap on the version counter). Otherwise its old tree is handed to the next
pending mutation, so a later failure restores the last saved state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any

from tui_planner import tree as tree_ops
from tui_planner.errors import InvalidTreeError
from tui_planner.models import Task, TaskTree
from tui_planner.store import TreeStore

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str, Exception], None]
ChangeCallback = Callable[[TaskTree], None]


@dataclass(frozen=True)
class PendingMutation:
    """A locally applied mutation whose save has not finished yet."""

    version: int
    label: str
    before: TaskTree
    after: TaskTree


class SyncAdapter:
    def __init__(
        self,
        store: TreeStore,
        owner_id: str,
        on_error: ErrorCallback | None = None,
        on_change: ChangeCallback | None = None,
    ) -> None:
        self.store = store
        self.owner_id = owner_id
        self.on_error = on_error
        self.on_change = on_change
        self._tree: TaskTree = ()
        self._version = 0
        self._pending: dict[int, PendingMutation] = {}
        self._saves: set[asyncio.Task[None]] = set()
        self._save_lock = asyncio.Lock()
        self._unsubscribe: Callable[[], None] | None = store.subscribe(
            owner_id, self.receive_remote
        )

    @property
    def tree(self) -> TaskTree:
        return self._tree

    @property
    def version(self) -> int:
        return self._version

    @property
    def pending(self) -> list[PendingMutation]:
        return [self._pending[v] for v in sorted(self._pending)]

    # ── Ingest ──

    def _check(self, tree: TaskTree) -> None:
        dupes = tree_ops.duplicate_ids(tree)
        if dupes:
            raise InvalidTreeError(f"duplicate task ids: {', '.join(sorted(dupes))}")

    def _adopt(self, tree: TaskTree) -> None:
        self._tree = tree
        self._version += 1
        if self.on_change:
            self.on_change(tree)

    async def load(self) -> TaskTree:
        """Replace the local copy with the stored tree."""
        tree = await self.store.load_tree(self.owner_id)
        self._check(tree)
        self._adopt(tree)
        logger.info(
            "loaded %d task(s) for %s",
            tree_ops.calculate_progress(tree).total, self.owner_id,
        )
        return tree

    def receive_remote(self, tree: TaskTree) -> None:
        """Subscription callback for trees arriving from the store."""
        if self._pending:
            logger.debug("remote tree ignored: %d local save(s) in flight", len(self._pending))
            return
        if tree == self._tree:
            return
        try:
            self._check(tree)
        except InvalidTreeError as e:
            logger.error("remote tree rejected: %s", e)
            if self.on_error:
                self.on_error("Received an invalid task tree", e)
            return
        logger.info("remote change adopted for %s", self.owner_id)
        self._adopt(tree)

    # ── Mutations ──

    def apply(self, mutation: Callable[..., TaskTree], *args: Any, label: str = "") -> TaskTree:
        """Apply a pure tree function locally and schedule its save.

        Returns the new local tree. A mutation that changes nothing is
        neither recorded nor saved.
        """
        before = self._tree
        after = mutation(before, *args)
        if after is before:
            return before
        self._version += 1
        envelope = PendingMutation(self._version, label or mutation.__name__, before, after)
        self._pending[envelope.version] = envelope
        self._tree = after
        if self.on_change:
            self.on_change(after)

        save = asyncio.get_running_loop().create_task(self._persist(envelope))
        self._saves.add(save)
        save.add_done_callback(self._saves.discard)
        return after

    async def _persist(self, envelope: PendingMutation) -> None:
        async with self._save_lock:
            try:
                await self.store.save_tree(self.owner_id, envelope.after)
            except Exception as exc:
                # An earlier failure may have moved its snapshot onto this envelope
                self._fail(self._pending.pop(envelope.version, envelope), exc)
            else:
                self._pending.pop(envelope.version, None)
                logger.debug("saved v%d (%s)", envelope.version, envelope.label)

    def _fail(self, envelope: PendingMutation, exc: Exception) -> None:
        if self._version == envelope.version:
            self._tree = envelope.before
            self._version += 1
            reverted = True
            if self.on_change:
                self.on_change(self._tree)
        else:
            # The next save carries this change; if it fails too, revert past both
            newer = [v for v in sorted(self._pending) if v > envelope.version]
            if newer:
                successor = self._pending[newer[0]]
                self._pending[newer[0]] = replace(successor, before=envelope.before)
            reverted = False
        logger.error(
            "saving %s (v%d) failed%s",
            envelope.label, envelope.version, ", reverted" if reverted else "",
            exc_info=exc,
        )
        if self.on_error:
            self.on_error(f"Could not save change ({envelope.label}): {exc}", exc)

    def update(self, task: Task) -> TaskTree:
        return self.apply(tree_ops.update_task_in_tree, task, label="update")

    def update_many(self, tasks: Iterable[Task]) -> TaskTree:
        return self.apply(tree_ops.update_tasks_in_tree, list(tasks), label="batch update")

    def delete(self, task_id: str) -> TaskTree:
        return self.apply(tree_ops.delete_task_from_tree, task_id, label="delete")

    def add_task(self, task: Task) -> TaskTree:
        return self.apply(tree_ops.add_task_to_tree, task, label="add task")

    def add_subtask(self, parent_id: str, task: Task) -> TaskTree:
        return self.apply(tree_ops.add_subtask_to_tree, parent_id, task, label="add subtask")

    def reparent(self, task_id: str, new_parent_id: str | None) -> TaskTree:
        return self.apply(tree_ops.reparent_task, task_id, new_parent_id, label="reparent")

    def indent(self, task_id: str) -> TaskTree:
        return self.apply(tree_ops.indent_task, task_id, label="indent")

    def outdent(self, task_id: str) -> TaskTree:
        return self.apply(tree_ops.outdent_task, task_id, label="outdent")

    # ── Lifecycle ──

    async def drain(self) -> None:
        """Wait for every in-flight save to finish."""
        while self._saves:
            await asyncio.gather(*list(self._saves))

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
