"""Shared fixtures for the loader test suite.

No MongoDB server is needed: the loader is exercised against in-memory sinks
that record every document, fail on demand, or hold writes open until the
test releases them.
"""

from __future__ import annotations

import logging
import sys
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Optional

import pytest

# ---------------------------------------------------------------------------
# Configure verbose logging for test debugging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s",
    stream=sys.stderr,
    force=True,
)
log = logging.getLogger("conftest")


# ---------------------------------------------------------------------------
# Fake sinks
# ---------------------------------------------------------------------------


class RecordingSink:
    """Resolves every write immediately; optionally fails selected documents."""

    def __init__(
        self,
        max_concurrency: int = 2,
        fail_when: Optional[Callable[[dict], bool]] = None,
    ):
        self.max_concurrency = max_concurrency
        self.fail_when = fail_when
        self.documents: list[dict] = []
        self.closed = False
        self._lock = threading.Lock()

    def write_async(self, document: dict) -> Future:
        future: Future = Future()
        with self._lock:
            self.documents.append(document)
        if self.fail_when is not None and self.fail_when(document):
            future.set_exception(RuntimeError("duplicate key"))
        else:
            future.set_result(1)
        return future

    def close(self) -> None:
        self.closed = True


class GatedSink:
    """Writes stay unresolved until the test releases them."""

    def __init__(self, max_concurrency: int = 1):
        self.max_concurrency = max_concurrency
        self.documents: list[dict] = []
        self.futures: list[Future] = []
        self._cond = threading.Condition()
        self._open = False

    def write_async(self, document: dict) -> Future:
        future: Future = Future()
        with self._cond:
            self.documents.append(document)
            self.futures.append(future)
            if self._open:
                future.set_result(1)
            self._cond.notify_all()
        return future

    @property
    def submitted(self) -> int:
        with self._cond:
            return len(self.futures)

    def wait_for_submissions(self, count: int, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: len(self.futures) >= count, timeout)

    def release(self, index: int) -> None:
        with self._cond:
            self.futures[index].set_result(1)

    def release_all(self) -> None:
        with self._cond:
            self._open = True
            for future in self.futures:
                if not future.done():
                    future.set_result(1)

    def close(self) -> None:
        pass


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def gated_sink() -> GatedSink:
    return GatedSink()


# ---------------------------------------------------------------------------
# Input trees
# ---------------------------------------------------------------------------


def write_xml(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def xml_tree(tmp_path: Path) -> Path:
    """A small nested input tree with five XML files.

    feeds/
      a.xml
      b.xml
      nested/
        c.xml
        deeper/
          d.xml
          e.xml
    """
    root = tmp_path / "feeds"
    write_xml(root / "a.xml", '<item id="a"><title>Alpha</title></item>')
    write_xml(root / "b.xml", '<item id="b"><title>Beta</title></item>')
    write_xml(root / "nested" / "c.xml", '<item id="c"><title>Gamma</title></item>')
    write_xml(
        root / "nested" / "deeper" / "d.xml",
        '<item id="d"><tag>x</tag><tag>y</tag></item>',
    )
    write_xml(root / "nested" / "deeper" / "e.xml", '<item id="e">  free text  </item>')
    return root
