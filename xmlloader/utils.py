"""Cross-cutting helpers: constants and filesystem entry classification."""

from __future__ import annotations

import os
from pathlib import Path

from .models import EntryKind

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_URL = "mongodb://localhost:27017/db.test"
DEFAULT_MAX_CONNECTIONS = 3
MAX_PENDING_CAP = 4096
PENDING_PER_CONNECTION = 1000
DEFAULT_WRITE_TIMEOUT_S = 600.0

TEXT_FIELD = "_text"


# ---------------------------------------------------------------------------
# Sizing helpers
# ---------------------------------------------------------------------------


def pending_capacity(connections: int) -> int:
    """Bound on outstanding writes for a sink with *connections* connections."""
    return max(1, min(MAX_PENDING_CAP, connections * PENDING_PER_CONNECTION))


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def classify_entry(path: Path) -> EntryKind:
    """Resolve the kind of *path*; anything unreadable is UNKNOWN."""
    if path.is_dir():
        return EntryKind.DIRECTORY if os.access(path, os.R_OK | os.X_OK) else EntryKind.UNKNOWN
    if path.is_file():
        return EntryKind.FILE
    return EntryKind.UNKNOWN


def list_directory(path: Path) -> list[Path]:
    """Immediate children of *path*, sorted by name for stable runs."""
    return sorted(path.iterdir())
