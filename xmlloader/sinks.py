"""Document sinks: MongoDB and JSON Lines."""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Optional, Protocol

from .models import ConfigurationError, Document
from .utils import DEFAULT_MAX_CONNECTIONS, DEFAULT_URL

log = logging.getLogger(__name__)


class DocumentSink(Protocol):
    """Asynchronous write service the loader streams documents into."""

    max_concurrency: int

    def write_async(self, document: Document) -> Future:
        """Submit *document*; the future resolves to the number written."""
        ...

    def close(self) -> None:
        ...


class _SinkBase:
    max_concurrency: int = 1

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


# ---------------------------------------------------------------------------
# MongoDB
# ---------------------------------------------------------------------------


def parse_mongo_url(url: str) -> tuple[str, str, Optional[int]]:
    """Split a MongoDB URI into (database, collection, maxPoolSize).

    The URI path must name ``<database>.<collection>``.
    """
    from pymongo.errors import PyMongoError
    from pymongo.uri_parser import parse_uri

    try:
        parsed = parse_uri(url)
    except (PyMongoError, ValueError) as exc:
        raise ConfigurationError(f"Invalid MongoDB URI '{url}': {exc}") from exc

    database = parsed.get("database")
    collection = parsed.get("collection")
    if not database or not collection:
        raise ConfigurationError(
            "You must specify the database and collection in the MongoDB URI."
        )
    pool_size = parsed.get("options", {}).get("maxPoolSize")
    return database, collection, pool_size


class MongoSink(_SinkBase):
    """Insert documents into a MongoDB collection from a small thread pool.

    The pool (and the client's connection pool) is sized to the concurrency
    budget: explicit *max_connections*, else the URI's ``maxPoolSize``, else
    :data:`DEFAULT_MAX_CONNECTIONS`.  Pass *collection* to write through an
    existing collection object instead of opening a client.
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        *,
        max_connections: Optional[int] = None,
        collection: Any = None,
    ):
        database, collection_name, pool_size = parse_mongo_url(url)
        self.max_concurrency = max(
            1, max_connections or pool_size or DEFAULT_MAX_CONNECTIONS
        )
        self.namespace = f"{database}.{collection_name}"

        self._client = None
        if collection is None:
            from pymongo import MongoClient

            self._client = MongoClient(url, maxPoolSize=self.max_concurrency)
            collection = self._client[database][collection_name]
        self._collection = collection
        self._lock = threading.Lock()
        self._inflight: set[Future] = set()
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_concurrency,
            thread_name_prefix="mongo-write",
        )
        log.info(
            "MongoDB sink ready: namespace=%s connections=%s",
            self.namespace,
            self.max_concurrency,
        )

    def _insert(self, document: Document) -> int:
        self._collection.insert_one(document)
        return 1

    def _settled(self, future: Future) -> None:
        with self._lock:
            self._inflight.discard(future)

    def write_async(self, document: Document) -> Future:
        future = self._executor.submit(self._insert, document)
        with self._lock:
            self._inflight.add(future)
        future.add_done_callback(self._settled)
        return future

    @property
    def inflight(self) -> int:
        with self._lock:
            return sum(1 for future in self._inflight if not future.done())

    def close(self) -> None:
        """Shut down the write pool and the client.

        Waits for the pool only when every write has settled; writes still
        outstanding (e.g. after a timed-out acknowledgement) are cancelled or
        abandoned so closing never blocks on them.
        """
        pending = self.inflight
        if pending:
            log.warning(
                "Closing MongoDB sink with %s unacknowledged write(s)", pending
            )
        self._executor.shutdown(wait=not pending, cancel_futures=True)
        if self._client is not None:
            self._client.close()
            self._client = None


# ---------------------------------------------------------------------------
# JSON Lines
# ---------------------------------------------------------------------------


class JsonlSink(_SinkBase):
    """Append each document as one JSON line to *out_path*.

    Writes happen on the caller's thread, so the returned future is already
    resolved.
    """

    def __init__(self, out_path: Path, *, max_concurrency: int = 1):
        self.out_path = Path(out_path)
        self.max_concurrency = max(1, max_concurrency)
        self.out_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._fh = self.out_path.open("a", encoding="utf-8")
        log.info("JSONL sink ready: %s", self.out_path)

    def write_async(self, document: Document) -> Future:
        future: Future = Future()
        try:
            line = json.dumps(document, ensure_ascii=False, default=str)
            with self._lock:
                self._fh.write(line + "\n")
        except (TypeError, ValueError, OSError) as exc:
            future.set_exception(exc)
        else:
            future.set_result(1)
        return future

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.close()
        log.debug("Closed JSONL sink -> %s", self.out_path)


def open_sink(
    url: str = DEFAULT_URL,
    *,
    jsonl_path: Optional[Path] = None,
    max_connections: Optional[int] = None,
) -> MongoSink | JsonlSink:
    """Build the sink selected on the command line."""
    if jsonl_path is not None:
        return JsonlSink(jsonl_path, max_concurrency=max_connections or 1)
    return MongoSink(url, max_connections=max_connections)
