"""Bounded buffer of in-flight writes used as the loader's admission gate."""

from __future__ import annotations

import queue
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from .models import WriteError


class PendingWrites:
    """Thread-safe FIFO holding at most *capacity* unresolved write futures.

    ``offer`` never blocks; a producer that gets ``False`` back is expected to
    ``poll`` the oldest future, wait on it, and offer again.  That keeps the
    number of documents held by the sink at or below *capacity* no matter how
    fast files are parsed.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._queue: queue.Queue[Future] = queue.Queue(maxsize=capacity)

    def offer(self, handle: Future) -> bool:
        try:
            self._queue.put_nowait(handle)
        except queue.Full:
            return False
        return True

    def poll(self) -> Optional[Future]:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def __len__(self) -> int:
        return self._queue.qsize()


def resolve_write(handle: Future, timeout: Optional[float] = None) -> int:
    """Wait for *handle* and return its write count.

    Raises:
        WriteError: the write failed, was cancelled, or did not acknowledge
            within *timeout* seconds.
    """
    try:
        return handle.result(timeout=timeout)
    except FutureTimeoutError as exc:
        raise WriteError(
            f"Timed out after {timeout}s waiting for a write acknowledgement"
        ) from exc
    except Exception as exc:
        raise WriteError(f"Write failed: {exc}") from exc
