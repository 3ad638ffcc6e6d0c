"""Input discovery: the shared work queue of files and directories."""

from __future__ import annotations

import logging
import queue
from pathlib import Path
from typing import Iterable, Optional

from .utils import list_directory

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Work queue
# ---------------------------------------------------------------------------


class WorkQueue:
    """Unbounded, thread-safe FIFO of filesystem entries still to be loaded.

    Every :meth:`take` that returns an entry must be matched by a :meth:`done`
    once the caller has finished with it (after re-enqueueing a directory's
    children).  ``take`` only reports exhaustion when the queue is empty *and*
    no taken entry is still pending, so a worker never gives up while another
    worker is in the middle of expanding a directory.
    """

    def __init__(self, roots: Iterable[Path] = (), *, poll_interval: float = 0.05):
        self._queue: queue.Queue[Path] = queue.Queue()
        self._poll_interval = poll_interval
        for root in roots:
            self.put(root)

    def put(self, path: Path) -> None:
        self._queue.put(Path(path))

    def take(self) -> Optional[Path]:
        """Return the next entry, or None once all work is finished."""
        while True:
            try:
                return self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                if self.idle():
                    return None

    def done(self) -> None:
        self._queue.task_done()

    def idle(self) -> bool:
        """True when nothing is queued and nothing taken is still in progress."""
        with self._queue.mutex:
            return self._queue.unfinished_tasks == 0

    def __len__(self) -> int:
        return self._queue.qsize()


# ---------------------------------------------------------------------------
# Directory expansion
# ---------------------------------------------------------------------------


def expand_directory(work: WorkQueue, directory: Path) -> int:
    """Enqueue the immediate children of *directory*; return how many."""
    children = list_directory(directory)
    for child in children:
        work.put(child)
    log.debug("Expanded %s -> %s entries", directory, len(children))
    return len(children)
