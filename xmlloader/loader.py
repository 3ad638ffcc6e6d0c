"""Concurrent loader: walk inputs, convert XML, stream documents to a sink.

A fixed pool of workers pulls entries from one shared :class:`WorkQueue`.
Directories are expanded back into the queue; files are parsed, converted and
submitted to the sink.  Every submission hands its pending write to a shared,
bounded :class:`PendingWrites` buffer; when the buffer is full the worker
waits on the oldest outstanding write before it may continue, which caps the
number of documents in flight regardless of how fast inputs are parsed.

Each worker keeps its own :class:`WorkerReport` and stops at its first
unrecovered error.  The :class:`Loader` joins all workers and aggregates the
reports; nothing is raised across threads.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Optional

from .conversion import convert_document
from .models import (
    EntryKind,
    LoaderConfig,
    LoadSummary,
    WorkerReport,
    WriteError,
)
from .parsing import iter_documents
from .pending import PendingWrites, resolve_write
from .sinks import DocumentSink
from .sources import WorkQueue, expand_directory
from .utils import classify_entry, pending_capacity

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------


class LoadWorker:
    """One pull loop over the shared work queue."""

    def __init__(
        self,
        name: str,
        work: WorkQueue,
        pending: PendingWrites,
        sink: DocumentSink,
        config: LoaderConfig,
        progress: Any = None,
    ):
        self.work = work
        self.pending = pending
        self.sink = sink
        self.config = config
        self.progress = progress
        self.report = WorkerReport(name=name)

    def run(self) -> WorkerReport:
        """Process entries until the queue is exhausted, then drain writes.

        Never raises; the first failure ends up on ``report.error``.
        """
        try:
            self._load()
            self._drain()
        except Exception as exc:
            log.error("%s stopped: %s", self.report.name, exc)
            log.debug("%s failure detail", self.report.name, exc_info=True)
            self.report.record_error(exc)
        return self.report

    # -- queue side --------------------------------------------------------

    def _load(self) -> None:
        while True:
            path = self.work.take()
            if path is None:
                return
            try:
                self._process(path)
            finally:
                self.work.done()

    def _process(self, path: Path) -> None:
        kind = classify_entry(path)
        if kind == EntryKind.DIRECTORY:
            expand_directory(self.work, path)
            self.report.directories += 1
        elif kind == EntryKind.FILE:
            self._load_file(path)
            self.report.files += 1
        else:
            log.warning("Cannot read '%s'.", path)
            self.report.skipped += 1

    def _load_file(self, path: Path) -> None:
        log.debug("%s: loading %s", self.report.name, path)
        count = 0
        for root in iter_documents(path, self.config.mode):
            self._submit(convert_document(root))
            count += 1
        log.debug("%s: %s -> %s document(s)", self.report.name, path, count)

    # -- write side --------------------------------------------------------

    def _submit(self, document: dict) -> None:
        handle = self.sink.write_async(document)
        self.report.documents += 1
        if self.progress is not None:
            self.progress.update(1)
        self._admit(handle)

    def _admit(self, handle: Future) -> None:
        # The handle must end up in the buffer even if resolving an older
        # write fails, so the final drain still accounts for it.
        failure: Optional[WriteError] = None
        while not self.pending.offer(handle):
            oldest = self.pending.poll()
            if oldest is None:
                continue
            try:
                self._resolve(oldest)
            except WriteError as exc:
                if failure is None:
                    failure = exc
        if failure is not None:
            raise failure

    def _resolve(self, handle: Future) -> None:
        try:
            resolve_write(handle, self.config.write_timeout)
        except WriteError as exc:
            self.report.write_failures += 1
            if self.config.stop_on_write_error:
                raise
            log.warning("%s: %s", self.report.name, exc)
            self.report.record_error(exc)

    def _drain(self) -> None:
        while True:
            handle = self.pending.poll()
            if handle is None:
                return
            self._resolve(handle)


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class Loader:
    """Run a fixed pool of :class:`LoadWorker` threads over *config.roots*."""

    def __init__(self, config: LoaderConfig, sink: DocumentSink):
        config.validate()
        self.config = config
        self.sink = sink
        self.summary: Optional[LoadSummary] = None

    @property
    def connections(self) -> int:
        return max(1, self.sink.max_concurrency)

    @property
    def worker_count(self) -> int:
        return self.config.workers or self.connections

    @property
    def capacity(self) -> int:
        return self.config.max_pending or pending_capacity(self.connections)

    def run(self) -> bool:
        """Load everything; True only if no worker recorded an error."""
        from tqdm import tqdm

        t0 = time.perf_counter()
        work = WorkQueue(self.config.roots, poll_interval=self.config.poll_interval)
        pending = PendingWrites(self.capacity)
        log.info(
            "Loading %s root(s): mode=%s workers=%s max_pending=%s",
            len(self.config.roots),
            self.config.mode.value,
            self.worker_count,
            pending.capacity,
        )

        with tqdm(
            desc="Loading",
            unit="doc",
            disable=not self.config.show_progress,
        ) as progress:
            workers = [
                LoadWorker(
                    f"Load Thread - {i}",
                    work,
                    pending,
                    self.sink,
                    self.config,
                    progress=progress,
                )
                for i in range(self.worker_count)
            ]
            with ThreadPoolExecutor(
                max_workers=len(workers),
                thread_name_prefix="xml-load",
            ) as executor:
                futures = [executor.submit(worker.run) for worker in workers]
                reports = [future.result() for future in futures]

        leftovers = self._drain_leftovers(pending)
        if leftovers.error is not None or leftovers.write_failures:
            reports.append(leftovers)

        self.summary = LoadSummary(
            reports=reports,
            elapsed_s=time.perf_counter() - t0,
        )
        self._log_summary(self.summary)
        return self.summary.success

    def _drain_leftovers(self, pending: PendingWrites) -> WorkerReport:
        """Resolve writes left behind by workers that stopped early."""
        report = WorkerReport(name="final drain")
        while True:
            handle = pending.poll()
            if handle is None:
                return report
            try:
                resolve_write(handle, self.config.write_timeout)
            except WriteError as exc:
                report.write_failures += 1
                report.record_error(exc)

    def _log_summary(self, summary: LoadSummary) -> None:
        log.info("=" * 60)
        log.info("LOAD COMPLETE" if summary.success else "LOAD FAILED")
        log.info("  Files:          %s", summary.files)
        log.info("  Documents:      %s", summary.documents)
        log.info("  Directories:    %s", summary.directories)
        log.info("  Skipped:        %s", summary.skipped)
        log.info("  Write failures: %s", summary.write_failures)
        log.info("  Elapsed:        %.2fs", summary.elapsed_s)
        for error in summary.errors:
            log.error("%s", error)
