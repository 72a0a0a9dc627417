"""
kjvstore - embedded King James Bible store

This package bootstraps, verifies, repairs and queries a local SQLite copy
of the KJV corpus:
- asset: copy the bundled corpus file to a writable location
- detect: find the books/verses relations in an arbitrary source file
- status: integrity checks
- importer: batched import into the canonical schema
- seed: fallback catalog and essential verses
- store / query: lifecycle state machine and the read API
"""

from . import config
from .errors import (
    AssetUnavailable,
    ImportPartialFailure,
    SchemaUndetected,
    ScriptureStoreError,
    StoreUnhealthy,
    StoreUnopenable,
)
from .model import Book, DetectedSchema, HealthReport, ImportResult, Scripture, VerseRef
from .query import QueryEngine
from .store import ScriptureStore, StoreStatus
from .util import info, ok, warn

__version__ = config.__version__
__all__ = [
    "config",
    "AssetUnavailable",
    "ImportPartialFailure",
    "SchemaUndetected",
    "ScriptureStoreError",
    "StoreUnhealthy",
    "StoreUnopenable",
    "Book",
    "DetectedSchema",
    "HealthReport",
    "ImportResult",
    "Scripture",
    "VerseRef",
    "QueryEngine",
    "ScriptureStore",
    "StoreStatus",
    "info",
    "ok",
    "warn",
]
