"""Tests for the work queue, directory expansion and the write buffer."""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from pathlib import Path

import pytest

from xmlloader import (
    EntryKind,
    PendingWrites,
    WorkQueue,
    WriteError,
    classify_entry,
    expand_directory,
    pending_capacity,
    resolve_write,
)


# =========================================================================
# 1. Work queue
# =========================================================================


class TestWorkQueue:
    def test_fifo_then_exhausted(self, tmp_path: Path):
        work = WorkQueue([tmp_path / "a", tmp_path / "b"], poll_interval=0.01)
        first = work.take()
        work.done()
        second = work.take()
        work.done()
        assert (first.name, second.name) == ("a", "b")
        assert work.take() is None
        assert work.idle()

    def test_take_waits_while_an_entry_is_in_progress(self, tmp_path: Path):
        work = WorkQueue([tmp_path / "dir"], poll_interval=0.01)
        held = work.take()
        assert held is not None

        result: dict = {}

        def _other_worker():
            result["item"] = work.take()

        thread = threading.Thread(target=_other_worker)
        thread.start()
        time.sleep(0.2)
        assert thread.is_alive(), "take() must not give up while work is in progress"

        work.put(tmp_path / "dir" / "child.xml")
        work.done()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert result["item"].name == "child.xml"

    def test_take_returns_none_once_holder_finishes(self, tmp_path: Path):
        work = WorkQueue([tmp_path / "only"], poll_interval=0.01)
        work.take()

        result: dict = {}
        thread = threading.Thread(target=lambda: result.setdefault("item", work.take()))
        thread.start()
        time.sleep(0.1)
        work.done()
        thread.join(timeout=5)
        assert result["item"] is None


class TestExpandDirectory:
    def test_enqueues_immediate_children_only(self, xml_tree: Path):
        work = WorkQueue(poll_interval=0.01)
        added = expand_directory(work, xml_tree)
        assert added == 3
        names = []
        while len(work):
            names.append(work.take().name)
            work.done()
        assert names == ["a.xml", "b.xml", "nested"]


class TestClassifyEntry:
    def test_kinds(self, xml_tree: Path):
        assert classify_entry(xml_tree) == EntryKind.DIRECTORY
        assert classify_entry(xml_tree / "a.xml") == EntryKind.FILE
        assert classify_entry(xml_tree / "missing") == EntryKind.UNKNOWN


# =========================================================================
# 2. In-flight write buffer
# =========================================================================


class TestPendingCapacity:
    @pytest.mark.parametrize(
        "connections, expected",
        [(0, 1), (1, 1000), (3, 3000), (5, 4096), (100, 4096)],
    )
    def test_capped(self, connections, expected):
        assert pending_capacity(connections) == expected


class TestPendingWrites:
    def test_offer_fails_when_full_and_poll_is_fifo(self):
        pending = PendingWrites(2)
        first, second, third = Future(), Future(), Future()
        assert pending.offer(first)
        assert pending.offer(second)
        assert not pending.offer(third)
        assert len(pending) == 2

        assert pending.poll() is first
        assert pending.offer(third)
        assert pending.poll() is second
        assert pending.poll() is third
        assert pending.poll() is None

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            PendingWrites(0)


class TestResolveWrite:
    def test_returns_count(self):
        future: Future = Future()
        future.set_result(1)
        assert resolve_write(future) == 1

    def test_failure_becomes_write_error(self):
        future: Future = Future()
        future.set_exception(RuntimeError("duplicate key"))
        with pytest.raises(WriteError, match="duplicate key"):
            resolve_write(future)

    def test_timeout_becomes_write_error(self):
        with pytest.raises(WriteError, match="Timed out"):
            resolve_write(Future(), timeout=0.05)
