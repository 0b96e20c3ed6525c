"""Tests for HistoryController hydration from persisted snapshots."""

from __future__ import annotations

import asyncio
import json

import pytest

from folio.history.controller import HistoryController
from folio.history.persistence import PersistenceAdapter
from folio.history.state import HistoryState
from folio.history.storage import MemoryStorage


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class GatedStorage:
    """Async storage whose reads block until ``release()`` is called."""

    def __init__(self, value=None):
        self.value = value
        self.writes: list = []
        self._gate = asyncio.Event()

    def release(self):
        self._gate.set()

    async def get(self, key):
        await self._gate.wait()
        return self.value

    def set(self, key, value):
        self.writes.append(value)

    def remove(self, key):
        self.value = None


def _stored(past, present, future, version=1) -> str:
    return json.dumps({"version": version, "past": past, "present": present, "future": future})


def _ctrl(storage, initial="DEFAULT", **kwargs) -> HistoryController:
    return HistoryController(
        initial, persistence=PersistenceAdapter(storage, "k"), **kwargs
    )


# ---------------------------------------------------------------------------
# Explicit hydrate()
# ---------------------------------------------------------------------------


class TestHydrate:
    @pytest.mark.asyncio
    async def test_applies_stored_snapshot(self):
        storage = MemoryStorage({"k": _stored(["A"], "B", ["C"])})
        c = HistoryController("DEFAULT", persistence=PersistenceAdapter(storage, "k"), auto_hydrate=False)
        assert await c.hydrate() is True
        assert c.state == HistoryState(past=("A",), present="B", future=("C",))
        assert c.hydrated is True

    @pytest.mark.asyncio
    async def test_no_snapshot_keeps_default(self):
        c = HistoryController("DEFAULT", persistence=PersistenceAdapter(MemoryStorage(), "k"), auto_hydrate=False)
        assert await c.hydrate() is False
        assert c.state == HistoryState.initial("DEFAULT")
        assert c.hydrated is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["not json{", "{}", _stored([], "X", [], version=99)])
    async def test_corrupt_snapshot_same_as_absent(self, raw):
        corrupt = HistoryController(
            "DEFAULT",
            persistence=PersistenceAdapter(MemoryStorage({"k": raw}), "k"),
            auto_hydrate=False,
        )
        absent = HistoryController(
            "DEFAULT",
            persistence=PersistenceAdapter(MemoryStorage(), "k"),
            auto_hydrate=False,
        )
        await corrupt.hydrate()
        await absent.hydrate()
        assert corrupt.state == absent.state
        assert corrupt.hydrated is True

    @pytest.mark.asyncio
    async def test_read_failure_still_hydrated(self):
        class Broken:
            def get(self, key):
                raise OSError("unavailable")

            def set(self, key, value):
                pass

            def remove(self, key):
                pass

        c = HistoryController("DEFAULT", persistence=PersistenceAdapter(Broken(), "k"), auto_hydrate=False)
        await c.hydrate()
        assert c.hydrated is True
        assert c.present == "DEFAULT"

    @pytest.mark.asyncio
    async def test_hydration_does_not_write_back(self):
        storage = GatedStorage(_stored([], "S", []))
        storage.release()
        c = HistoryController("DEFAULT", persistence=PersistenceAdapter(storage, "k"), auto_hydrate=False)
        await c.hydrate()
        assert storage.writes == []

    @pytest.mark.asyncio
    async def test_hydration_bounds_past(self):
        storage = MemoryStorage({"k": _stored([1, 2, 3, 4], 5, [])})
        c = HistoryController(0, persistence=PersistenceAdapter(storage, "k"), max_size=2, auto_hydrate=False)
        await c.hydrate()
        assert c.past == (3, 4)

    @pytest.mark.asyncio
    async def test_listeners_notified(self):
        storage = MemoryStorage({"k": _stored([], "S", [])})
        c = HistoryController("DEFAULT", persistence=PersistenceAdapter(storage, "k"), auto_hydrate=False)
        changes, hydrations = [], []
        c.subscribe(changes.append)
        c.on_hydrated(hydrations.append)
        await c.hydrate()
        assert [s.present for s in changes] == ["S"]
        assert [s.present for s in hydrations] == ["S"]

    @pytest.mark.asyncio
    async def test_without_persistence(self):
        c = HistoryController("DEFAULT")
        assert await c.hydrate() is False
        assert c.hydrated is True


# ---------------------------------------------------------------------------
# Automatic hydration inside a running loop
# ---------------------------------------------------------------------------


class TestAutoHydrate:
    @pytest.mark.asyncio
    async def test_scheduled_on_construction(self):
        storage = MemoryStorage({"k": _stored(["A"], "B", [])})
        c = _ctrl(storage)
        assert c.hydrated is False
        assert c.present == "DEFAULT"
        assert await c.wait_hydrated() is True
        assert c.present == "B"

    @pytest.mark.asyncio
    async def test_edits_before_hydration_use_memory_state(self):
        storage = GatedStorage(_stored([], "STORED", []))
        c = _ctrl(storage)
        c.set("EDIT")
        assert c.present == "EDIT"
        assert c.past == ("DEFAULT",)
        assert len(storage.writes) == 1
        c.close()

    @pytest.mark.asyncio
    async def test_late_hydration_clobbers_edits(self):
        storage = GatedStorage(_stored([], "STORED", []))
        c = _ctrl(storage)
        c.set("EDIT")
        storage.release()
        await c.wait_hydrated()
        assert c.present == "STORED"

    @pytest.mark.asyncio
    async def test_close_before_resolution_discards_result(self):
        storage = GatedStorage(_stored([], "STORED", []))
        c = _ctrl(storage)
        c.close()
        storage.release()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert c.present == "DEFAULT"
        assert c.hydrated is False
        assert await c.wait_hydrated() is False

    @pytest.mark.asyncio
    async def test_closed_flag_checked_after_read(self):
        storage = GatedStorage(_stored([], "STORED", []))
        c = HistoryController("DEFAULT", persistence=PersistenceAdapter(storage, "k"), auto_hydrate=False)
        task = asyncio.ensure_future(c.hydrate())
        await asyncio.sleep(0)
        c.close()
        storage.release()
        assert await task is False
        assert c.present == "DEFAULT"

    @pytest.mark.asyncio
    async def test_async_context_manager(self):
        storage = MemoryStorage({"k": _stored([], "S", [])})
        async with _ctrl(storage) as c:
            assert c.hydrated is True
            assert c.present == "S"
        assert c.closed is True

    @pytest.mark.asyncio
    async def test_wait_hydrated_runs_hydration_when_not_scheduled(self):
        storage = MemoryStorage({"k": _stored([], "S", [])})
        c = HistoryController("DEFAULT", persistence=PersistenceAdapter(storage, "k"), auto_hydrate=False)
        assert await c.wait_hydrated() is True
        assert c.present == "S"


class TestHydrateOutsideLoop:
    def test_asyncio_run(self):
        storage = MemoryStorage({"k": _stored(["A"], "B", [])})
        c = _ctrl(storage)
        assert c.hydrated is False
        asyncio.run(c.hydrate())
        assert c.hydrated is True
        assert c.present == "B"
