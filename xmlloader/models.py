"""Shared data models for the loader."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

# A converted document: str scalars, nested dicts, and lists of either.
Document = dict[str, Any]


class LoadMode(str, Enum):
    FILES = "files"
    LINES = "lines"


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class LoadError(Exception):
    """Base class for loader failures."""


class ConfigurationError(LoadError):
    """Bad arguments or sink settings, raised before any worker starts."""


class DocumentParseError(LoadError):
    """An input file (or one line of it) could not be read or parsed."""

    def __init__(self, path: Path, reason: str, line: Optional[int] = None):
        self.path = path
        self.line = line
        where = f"{path}:{line}" if line is not None else str(path)
        super().__init__(f"Failed to parse '{where}': {reason}")


class WriteError(LoadError):
    """A submitted document failed to persist, or its acknowledgement timed out."""


# ---------------------------------------------------------------------------
# Configuration and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoaderConfig:
    roots: tuple[Path, ...]
    mode: LoadMode = LoadMode.FILES

    # None -> derived from the sink's concurrency budget
    workers: Optional[int] = None
    max_pending: Optional[int] = None

    # Seconds to wait on a single write acknowledgement; None waits forever.
    write_timeout: Optional[float] = 600.0
    stop_on_write_error: bool = True

    show_progress: bool = True
    poll_interval: float = 0.05

    def validate(self) -> None:
        if not self.roots:
            raise ConfigurationError("Must supply at least 1 file or directory to load.")
        if self.workers is not None and self.workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.workers}")
        if self.max_pending is not None and self.max_pending < 1:
            raise ConfigurationError(f"max_pending must be >= 1, got {self.max_pending}")
        if self.write_timeout is not None and self.write_timeout <= 0:
            raise ConfigurationError(
                f"write_timeout must be positive or None, got {self.write_timeout}"
            )


@dataclass
class WorkerReport:
    """Counters and the first unrecovered error of a single worker."""

    name: str
    files: int = 0
    documents: int = 0
    directories: int = 0
    skipped: int = 0
    write_failures: int = 0
    error: Optional[BaseException] = None

    def record_error(self, exc: BaseException) -> None:
        if self.error is None:
            self.error = exc


@dataclass
class LoadSummary:
    reports: list[WorkerReport] = field(default_factory=list)
    elapsed_s: float = 0.0

    @property
    def errors(self) -> list[BaseException]:
        return [r.error for r in self.reports if r.error is not None]

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def files(self) -> int:
        return sum(r.files for r in self.reports)

    @property
    def documents(self) -> int:
        return sum(r.documents for r in self.reports)

    @property
    def directories(self) -> int:
        return sum(r.directories for r in self.reports)

    @property
    def skipped(self) -> int:
        return sum(r.skipped for r in self.reports)

    @property
    def write_failures(self) -> int:
        return sum(r.write_failures for r in self.reports)
