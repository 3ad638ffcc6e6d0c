"""XML -> MongoDB concurrent loader.

Public API -- all symbols that tests and external code import live here.
Internally the code is split across focused submodules; this file
re-exports the stable public surface so ``from xmlloader import X`` works.
"""

from .conversion import (
    child_nodes,
    clean_name,
    convert_document,
    convert_element,
    count_names,
    is_leaf_text,
)
from .loader import Loader, LoadWorker
from .models import (
    ConfigurationError,
    DocumentParseError,
    EntryKind,
    LoadError,
    LoaderConfig,
    LoadMode,
    LoadSummary,
    WorkerReport,
    WriteError,
)
from .parsing import iter_documents, iter_xml_lines, parse_xml_file, parse_xml_string
from .pending import PendingWrites, resolve_write
from .sinks import DocumentSink, JsonlSink, MongoSink, open_sink, parse_mongo_url
from .sources import WorkQueue, expand_directory
from .utils import (
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_URL,
    MAX_PENDING_CAP,
    TEXT_FIELD,
    classify_entry,
    pending_capacity,
)

__all__ = [
    # Models
    "EntryKind",
    "LoadMode",
    "LoaderConfig",
    "LoadSummary",
    "WorkerReport",
    # Errors
    "LoadError",
    "ConfigurationError",
    "DocumentParseError",
    "WriteError",
    # Constants
    "DEFAULT_URL",
    "DEFAULT_MAX_CONNECTIONS",
    "MAX_PENDING_CAP",
    "TEXT_FIELD",
    # Utils
    "classify_entry",
    "pending_capacity",
    # Parsing
    "parse_xml_file",
    "parse_xml_string",
    "iter_xml_lines",
    "iter_documents",
    # Conversion
    "clean_name",
    "child_nodes",
    "count_names",
    "is_leaf_text",
    "convert_element",
    "convert_document",
    # Work queue
    "WorkQueue",
    "expand_directory",
    # Write pipeline
    "PendingWrites",
    "resolve_write",
    "DocumentSink",
    "MongoSink",
    "JsonlSink",
    "open_sink",
    "parse_mongo_url",
    # Loader
    "LoadWorker",
    "Loader",
]
