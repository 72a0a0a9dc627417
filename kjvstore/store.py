"""
The scripture store: one local SQLite file plus its lifecycle.

ScriptureStore owns the single cached connection and the state machine

    LOADING -> READY | REPAIR | ERROR
    REPAIR / ERROR -> READY      (repair())
    READY -> LOADING -> ...      (reload(force=True))

Imports, repairs and reloads hold the write side of a ReadWriteLock; reads
hold the read side, so a query issued during a repair waits for it to end.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from .asset import AssetMaterializer
from .config import IMPORT_BATCH_SIZE, THIN_STORE_VERSE_COUNT
from .db import connect, ensure_canonical_schema, safe_count
from .errors import AssetUnavailable, StoreUnopenable
from .importer import Importer, ProgressCallback, seed_fallback
from .locks import ReadWriteLock
from .model import HealthReport, ImportProgress, ImportResult
from .paths import resolve_asset_path, resolve_db_path, resolve_local_asset_path
from .status import diagnose
from .util import info, ok, warn


class StoreStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    REPAIR = "repair"
    ERROR = "error"


StatusCallback = Callable[[StoreStatus, Optional[str]], None]


class ScriptureStore:
    """
    Lazily-opened, self-repairing local scripture store.

    Parameters
    ----------
    db_path, asset_path, local_asset_path:
        Override the locations from kjvstore.paths (argument > env > default).
    batch_size:
        Importer batch size.
    auto_repair:
        When True, ensure_ready() repairs a REPAIR/ERROR store before reads.
    on_progress:
        Forwarded to the Importer for every committed batch.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        asset_path: Optional[Path] = None,
        local_asset_path: Optional[Path] = None,
        batch_size: int = IMPORT_BATCH_SIZE,
        auto_repair: bool = True,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.db_path = resolve_db_path(db_path)
        self.materializer = AssetMaterializer(
            resolve_asset_path(asset_path),
            resolve_local_asset_path(local_asset_path),
        )
        self.batch_size = batch_size
        self.auto_repair = auto_repair
        self.on_progress = on_progress

        self.diagnostic: Optional[str] = None
        self.last_import: Optional[ImportResult] = None

        self._status = StoreStatus.LOADING
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = ReadWriteLock()
        self._cancel = threading.Event()
        self._importer: Optional[Importer] = None
        self._repopulated = False
        self._subscribers: List[StatusCallback] = []

    # ---------- observable state ----------

    @property
    def status(self) -> StoreStatus:
        return self._status

    @property
    def progress(self) -> Optional[ImportProgress]:
        """Counters of the current (or last) import, if any."""
        return self._importer.progress if self._importer is not None else None

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        """
        Call `callback(status, diagnostic)` on every state change.

        Callbacks run while the store's write lock may be held; they must not
        call back into the store. Returns a function that removes the
        subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _set_status(self, status: StoreStatus, diagnostic: Optional[str] = None) -> None:
        self._status = status
        self.diagnostic = diagnostic
        if diagnostic:
            info(f"Store state -> {status.value}: {diagnostic}")
        else:
            info(f"Store state -> {status.value}")
        for callback in list(self._subscribers):
            callback(status, diagnostic)

    # ---------- lifecycle ----------

    def open(self) -> StoreStatus:
        """
        Open the local store and classify it: READY when healthy, REPAIR when
        not, ERROR when the file cannot be opened at all.
        """
        with self._lock.write():
            self._open_locked()
        return self._status

    def ensure_ready(self) -> bool:
        """
        Make the store usable for reads, repairing it if needed.

        Returns True when the store ends up READY.
        """
        if self._status is StoreStatus.READY and self._conn is not None:
            return True

        with self._lock.write():
            # Another caller may have finished the work while we waited.
            if self._status is StoreStatus.READY and self._conn is not None:
                return True
            if self._conn is None:
                self._open_locked()
            if self._status in (StoreStatus.REPAIR, StoreStatus.ERROR) and self.auto_repair:
                self._repair_locked()
            return self._status is StoreStatus.READY

    def repair(self) -> Optional[ImportResult]:
        """
        Re-run materialize -> detect -> import (degrading to the seeder).

        Returns the ImportResult, or None when the store could not be written.
        """
        with self._lock.write():
            return self._repair_locked()

    def reload(self, force: bool = True) -> Optional[ImportResult]:
        """
        Rebuild the store from the bundled asset.

        With force=True the local asset copy is discarded first and the
        canonical tables are dropped, so everything is re-read from scratch.
        """
        with self._lock.write():
            self._set_status(StoreStatus.LOADING, "Reloading store")
            self._repopulated = False
            if force:
                self.materializer.discard_local_copy()
                if self._conn is not None:
                    try:
                        with self._conn:
                            self._conn.execute("DROP TABLE IF EXISTS verses;")
                            self._conn.execute("DROP TABLE IF EXISTS books;")
                    except sqlite3.Error as e:
                        warn(f"Could not drop store tables: {e}")
            return self._repair_locked()

    def repopulate_once(self) -> bool:
        """
        Repair a thin store at most once per store lifetime (reload() resets it).

        Returns True if a repopulation ran and completed.
        """
        if self._repopulated:
            return False
        with self._lock.write():
            if self._repopulated:
                return False
            self._repopulated = True
            info("Store looks thin; repopulating once.")
            return self._repair_locked() is not None

    def interrupt(self) -> None:
        """Ask a running import to stop before its next batch."""
        self._cancel.set()

    def close(self) -> None:
        with self._lock.write():
            if self._conn is not None:
                self._conn.close()
                self._conn = None
            self._status = StoreStatus.LOADING
            self.diagnostic = None

    def __enter__(self) -> "ScriptureStore":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------- connection access ----------

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        """Shared access to the connection for queries."""
        with self._lock.read():
            if self._conn is None:
                raise StoreUnopenable(f"Store is not open: {self.db_path}")
            yield self._conn

    @contextmanager
    def write(self) -> Iterator[sqlite3.Connection]:
        """Exclusive access to the connection."""
        with self._lock.write():
            if self._conn is None:
                raise StoreUnopenable(f"Store is not open: {self.db_path}")
            yield self._conn

    def health(self) -> HealthReport:
        if self._conn is None:
            return HealthReport(message=f"Store is not open: {self.db_path}")
        with self._lock.read():
            return diagnose(self._conn)

    def verse_count(self) -> int:
        if self._conn is None:
            return 0
        with self._lock.read():
            return safe_count(self._conn, "verses") or 0

    def is_thin(self) -> bool:
        return self.verse_count() < THIN_STORE_VERSE_COUNT

    # ---------- internals (caller holds the write lock) ----------

    def _connect_locked(self) -> bool:
        if self._conn is not None:
            return True
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = connect(self.db_path, shared=True)
        except (sqlite3.Error, OSError) as e:
            self._set_status(StoreStatus.ERROR, f"Store could not be opened: {e}")
            return False
        try:
            ensure_canonical_schema(conn)
        except sqlite3.Error as e:
            conn.close()
            self._set_status(StoreStatus.ERROR, f"Store could not be initialized: {e}")
            return False
        self._conn = conn
        return True

    def _open_locked(self) -> None:
        if not self._connect_locked():
            return
        report = diagnose(self._conn)
        if report.healthy:
            self._set_status(StoreStatus.READY)
        else:
            self._set_status(StoreStatus.REPAIR, report.message)

    def _repair_locked(self) -> Optional[ImportResult]:
        self._cancel.clear()
        if not self._connect_locked():
            return None

        self._set_status(StoreStatus.LOADING, "Importing corpus")
        try:
            try:
                source = self.materializer.ensure_local_copy()
            except AssetUnavailable as e:
                warn(str(e))
                result = seed_fallback(self._conn, str(e))
            else:
                self._importer = Importer(
                    batch_size=self.batch_size,
                    on_progress=self.on_progress,
                    cancel_event=self._cancel,
                )
                result = self._importer.run(self._conn, source)
        except StoreUnopenable as e:
            self._set_status(StoreStatus.ERROR, str(e))
            return None
        except Exception as e:
            warn(f"Repair failed: {type(e).__name__}: {e}")
            self._set_status(StoreStatus.ERROR, f"Repair failed: {e}")
            return None

        self.last_import = result
        if result.degraded:
            self._set_status(StoreStatus.READY, f"Degraded store (fallback data): {result.error}")
        elif result.partial:
            self._set_status(StoreStatus.READY, f"Partial import: {result.verses_imported} verses kept")
        elif result.cancelled:
            self._set_status(StoreStatus.READY, f"Import cancelled: {result.verses_imported} verses kept")
        else:
            self._set_status(StoreStatus.READY)
            ok(f"Store ready: {result.books_imported} books, {result.verses_imported} verses.")
        return result
