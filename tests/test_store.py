"""Tests for the in-memory and JSON file stores."""

import asyncio
import json
import os
import time
from datetime import date

import pytest

from tui_planner.errors import StoreError, StoreLockedError
from tui_planner.filelock import LOCK_NAME
from tui_planner.models import Task
from tui_planner.store import JsonFileStore, MemoryStore

TREE = (
    Task("A", id="a", start_date=date(2024, 8, 1), end_date=date(2024, 8, 3),
         subtasks=(Task("B", id="b"),)),
)


class TestMemoryStore:
    @pytest.mark.asyncio
    async def test_load_unknown_owner_is_empty(self):
        assert await MemoryStore().load_tree("nobody") == ()

    @pytest.mark.asyncio
    async def test_save_and_load(self):
        store = MemoryStore()
        await store.save_tree("me", TREE)
        assert await store.load_tree("me") == TREE
        assert await store.load_tree("other") == ()

    @pytest.mark.asyncio
    async def test_subscribers_notified_on_next_iteration(self):
        store = MemoryStore()
        received = []
        store.subscribe("me", received.append)
        await store.save_tree("me", TREE)
        assert received == []
        await asyncio.sleep(0)
        assert received == [TREE]

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        store = MemoryStore()
        received = []
        unsubscribe = store.subscribe("me", received.append)
        unsubscribe()
        unsubscribe()
        await store.save_tree("me", TREE)
        await asyncio.sleep(0)
        assert received == []


class TestJsonFileStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        with JsonFileStore(tmp_path / "store") as store:
            await store.save_tree("me", TREE)
            assert await store.load_tree("me") == TREE
        data = json.loads((tmp_path / "store" / "me.json").read_text(encoding="utf-8"))
        assert data["tasks"][0]["startDate"] == "2024-08-01"

    @pytest.mark.asyncio
    async def test_missing_document_is_empty(self, tmp_path):
        assert await JsonFileStore(tmp_path).load_tree("me") == ()

    @pytest.mark.asyncio
    async def test_backup_written(self, tmp_path):
        store = JsonFileStore(tmp_path)
        await store.save_tree("me", TREE)
        await store.save_tree("me", ())
        backup = json.loads((tmp_path / "me.json.bak").read_text(encoding="utf-8"))
        assert backup["tasks"][0]["id"] == "a"

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, tmp_path):
        store = JsonFileStore(tmp_path, backup=False)
        await store.save_tree("me", TREE)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["me.json"]

    @pytest.mark.asyncio
    async def test_warnings_recorded(self, tmp_path):
        (tmp_path / "me.json").write_text(
            json.dumps([{"id": "a", "name": ""}, {"id": "a", "name": "Dup"}]), encoding="utf-8"
        )
        store = JsonFileStore(tmp_path)
        tree = await store.load_tree("me")
        assert len(tree) == 2
        assert len(store.warnings["me"]) == 2

    @pytest.mark.asyncio
    async def test_corrupt_document(self, tmp_path):
        (tmp_path / "me.json").write_text("{oops", encoding="utf-8")
        with pytest.raises(StoreError):
            await JsonFileStore(tmp_path).load_tree("me")

    def test_invalid_owner(self, tmp_path):
        with pytest.raises(StoreError):
            JsonFileStore(tmp_path).path_for("../escape")

    def test_lock_held_while_open(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.open()
        assert (tmp_path / LOCK_NAME).exists()
        store.close()
        assert not (tmp_path / LOCK_NAME).exists()

    def test_locked_by_other_process(self, tmp_path):
        (tmp_path / LOCK_NAME).write_text(f"{os.getppid()}|{time.time()}", encoding="utf-8")
        with pytest.raises(StoreLockedError):
            JsonFileStore(tmp_path).open()

    @pytest.mark.asyncio
    async def test_poll_picks_up_external_edit(self, tmp_path):
        store = JsonFileStore(tmp_path)
        received = []
        store.subscribe("me", received.append)
        await store.save_tree("me", TREE)
        await asyncio.sleep(0)
        assert await store.poll() == []

        path = tmp_path / "me.json"
        path.write_text(json.dumps({"tasks": [{"id": "z", "name": "Z"}]}), encoding="utf-8")
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 5))

        assert await store.poll() == ["me"]
        await asyncio.sleep(0)
        assert received[-1][0].id == "z"
        assert await store.poll() == []
