"""Persistence collaborators: the store port and two implementations.

The core only ever talks to a ``TreeStore``: load a tree, save a tree, and
subscribe to changes, all keyed by an owner id. ``JsonFileStore`` keeps one
JSON document per owner in a directory; ``MemoryStore`` keeps them in a
dict for sessions that should not touch the disk.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from tui_planner.codec import dumps_tree, loads_tree
from tui_planner.errors import InvalidTreeError, StoreError, StoreLockedError
from tui_planner.filelock import acquire_lock, release_lock
from tui_planner.models import IngestWarning, TaskTree

logger = logging.getLogger(__name__)

TreeCallback = Callable[[TaskTree], None]
Unsubscribe = Callable[[], None]

_OWNER_RE = re.compile(r"^[A-Za-z0-9_.@-]+$")


class TreeStore(Protocol):
    """Where task trees live between sessions."""

    async def load_tree(self, owner_id: str) -> TaskTree: ...

    async def save_tree(self, owner_id: str, tree: TaskTree) -> None: ...

    def subscribe(self, owner_id: str, callback: TreeCallback) -> Unsubscribe: ...


class _Subscribers:
    """Per-owner callback registry shared by the store implementations."""

    def __init__(self) -> None:
        self._callbacks: dict[str, list[TreeCallback]] = {}

    def add(self, owner_id: str, callback: TreeCallback) -> Unsubscribe:
        self._callbacks.setdefault(owner_id, []).append(callback)

        def _unsubscribe() -> None:
            callbacks = self._callbacks.get(owner_id, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return _unsubscribe

    def owners(self) -> list[str]:
        return [owner for owner, cbs in self._callbacks.items() if cbs]

    def notify(self, owner_id: str, tree: TaskTree) -> None:
        """Deliver *tree* on the next loop iteration, as a remote echo would."""
        callbacks = list(self._callbacks.get(owner_id, []))
        if not callbacks:
            return
        loop = asyncio.get_running_loop()
        for callback in callbacks:
            loop.call_soon(callback, tree)


class MemoryStore:
    """Keeps trees in memory; nothing survives the process."""

    def __init__(self, initial: dict[str, TaskTree] | None = None) -> None:
        self._trees: dict[str, TaskTree] = dict(initial or {})
        self._subscribers = _Subscribers()

    async def load_tree(self, owner_id: str) -> TaskTree:
        return self._trees.get(owner_id, ())

    async def save_tree(self, owner_id: str, tree: TaskTree) -> None:
        self._trees[owner_id] = tree
        self._subscribers.notify(owner_id, tree)

    def subscribe(self, owner_id: str, callback: TreeCallback) -> Unsubscribe:
        return self._subscribers.add(owner_id, callback)


def _atomic_write(target: Path, content: str, backup: bool = True) -> None:
    """Write via a temp file and os.replace, keeping a .bak of the old file."""
    if backup and target.exists():
        bak_path = target.with_suffix(target.suffix + ".bak")
        try:
            bak_path.write_text(target.read_text(encoding="utf-8"), encoding="utf-8")
        except OSError as e:
            logger.warning("could not back up %s: %s", target, e)

    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=target.parent, suffix=".tmp", prefix=".tui-planner-")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, target)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class JsonFileStore:
    """One ``<owner>.json`` document per owner inside *directory*.

    The directory is locked while the store is open. Other processes'
    edits are picked up by ``poll()``.
    """

    def __init__(self, directory: Path, backup: bool = True) -> None:
        self.directory = directory
        self.backup = backup
        self.warnings: dict[str, list[IngestWarning]] = {}
        self._mtimes: dict[str, float] = {}
        self._subscribers = _Subscribers()
        self._open = False

    # ── Lifecycle ──

    def open(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        if not acquire_lock(self.directory):
            raise StoreLockedError(f"{self.directory} is locked by another process")
        self._open = True
        logger.info("opened store %s", self.directory)

    def close(self) -> None:
        if self._open:
            release_lock(self.directory)
            self._open = False
            logger.info("closed store %s", self.directory)

    def __enter__(self) -> JsonFileStore:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ── Paths ──

    def path_for(self, owner_id: str) -> Path:
        if not _OWNER_RE.match(owner_id):
            raise StoreError(f"invalid owner id {owner_id!r}")
        return self.directory / f"{owner_id}.json"

    def _mtime(self, path: Path) -> float | None:
        try:
            return path.stat().st_mtime
        except FileNotFoundError:
            return None

    # ── TreeStore ──

    def _read(self, owner_id: str) -> TaskTree:
        path = self.path_for(owner_id)
        mtime = self._mtime(path)
        if mtime is None:
            return ()
        try:
            tree, warnings = loads_tree(path.read_text(encoding="utf-8"))
        except (OSError, InvalidTreeError) as e:
            raise StoreError(f"cannot read {path}: {e}") from e
        for warning in warnings:
            logger.warning("%s: %s", path.name, warning)
        self.warnings[owner_id] = warnings
        self._mtimes[owner_id] = mtime
        return tree

    def _write(self, owner_id: str, tree: TaskTree) -> None:
        path = self.path_for(owner_id)
        try:
            _atomic_write(path, dumps_tree(tree) + "\n", backup=self.backup)
        except OSError as e:
            raise StoreError(f"cannot write {path}: {e}") from e
        self._mtimes[owner_id] = self._mtime(path) or 0.0

    async def load_tree(self, owner_id: str) -> TaskTree:
        return await asyncio.to_thread(self._read, owner_id)

    async def save_tree(self, owner_id: str, tree: TaskTree) -> None:
        await asyncio.to_thread(self._write, owner_id, tree)
        logger.debug("saved %d top-level task(s) for %s", len(tree), owner_id)
        self._subscribers.notify(owner_id, tree)

    def subscribe(self, owner_id: str, callback: TreeCallback) -> Unsubscribe:
        return self._subscribers.add(owner_id, callback)

    async def poll(self) -> list[str]:
        """Reload documents changed on disk by someone else.

        Returns the owners whose subscribers were notified.
        """
        changed: list[str] = []
        for owner_id in self._subscribers.owners():
            mtime = self._mtime(self.path_for(owner_id))
            if mtime is None or mtime == self._mtimes.get(owner_id):
                continue
            tree = await self.load_tree(owner_id)
            logger.info("external change to %s picked up", owner_id)
            self._subscribers.notify(owner_id, tree)
            changed.append(owner_id)
        return changed
