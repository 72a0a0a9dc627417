"""
Corpus importer: copy a source Bible file into the canonical schema.

Pipeline for one run:

    ensure schema -> detect source -> replace books -> stream verses in batches

Failures degrade instead of propagating:

- no recognizable schema, or an empty books table -> Fallback Seeder, degraded
- books copy fails                                 -> static 66-book catalog
- a verse batch fails                              -> keep earlier batches, partial
- no verse committed at all                        -> curated verses, degraded
- anything else (source unreadable, dest unwritable) -> Fallback Seeder, degraded
- an unexpected error anywhere                     -> Fallback Seeder, degraded

Only when the seeder itself cannot write is StoreUnopenable raised.
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .canon import BOOKS
from .config import IMPORT_BATCH_SIZE
from .db import connect, ensure_canonical_schema, get_conn, quote_ident, safe_count, table_columns
from .detect import detect
from .errors import ImportPartialFailure, SchemaUndetected, StoreUnopenable
from .model import DetectedSchema, ImportProgress, ImportResult
from .seed import reference_in_range, seed_books, seed_essential_verses, seed_minimal, verse_id
from .util import info, ok, warn

ProgressCallback = Callable[[ImportProgress], None]

VerseTuple = Tuple[int, int, int, int, str]

BOOK_COLUMN_CANDIDATES: Dict[str, List[str]] = {
    "id": ["id", "book_id", "book_number", "number"],
    "name": ["name", "book_name", "title"],
}

VERSE_COLUMN_CANDIDATES: Dict[str, List[str]] = {
    "book_id": ["book_id", "book", "book_number", "bookid", "b"],
    "chapter": ["chapter", "chapter_num", "chapter_number", "c"],
    "verse": ["verse", "verse_num", "verse_number", "v"],
    "text": ["text", "verse_text", "content", "t"],
}

CANON_BOOK_IDS = range(1, len(BOOKS) + 1)


def map_columns(columns: Sequence[str], candidates: Dict[str, List[str]]) -> Optional[Dict[str, str]]:
    """
    Map logical column names to the source's actual column names.

    Returns None if any logical column has no candidate present.
    """
    by_lower = {c.lower(): c for c in columns}
    mapping: Dict[str, str] = {}
    for logical, names in candidates.items():
        actual = next((by_lower[n] for n in names if n in by_lower), None)
        if actual is None:
            return None
        mapping[logical] = actual
    return mapping


class Importer:
    """
    Batched copy of a source corpus into a destination connection.

    Parameters
    ----------
    batch_size:
        Verse rows per committed transaction.
    on_progress:
        Called with `progress` after every committed batch.
    cancel_event:
        When set, the verse loop stops before the next batch.
    """

    def __init__(
        self,
        batch_size: int = IMPORT_BATCH_SIZE,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.batch_size = batch_size
        self.on_progress = on_progress
        self.cancel_event = cancel_event or threading.Event()
        self.progress = ImportProgress()

    # ---------- public ----------

    def run(self, dest: sqlite3.Connection, source_path: Path) -> ImportResult:
        """
        Import `source_path` into `dest` and report what happened.

        Raises StoreUnopenable only when even the Fallback Seeder cannot
        write to `dest`.
        """
        result = ImportResult()
        self.progress = ImportProgress()
        info(f"Importing corpus from {source_path}")

        try:
            self._import(dest, Path(source_path), result)
        except SchemaUndetected as e:
            warn(f"{e}; falling back to the essential verse set.")
            self._seed(dest, result, str(e))
        except (sqlite3.Error, OSError) as e:
            warn(f"Import failed: {e}; falling back to the essential verse set.")
            self._rollback(dest)
            self._seed(dest, result, str(e))
        except Exception as e:
            warn(f"Import aborted ({type(e).__name__}: {e}); falling back to the essential verse set.")
            self._rollback(dest)
            self._seed(dest, result, f"{type(e).__name__}: {e}")

        if result.degraded:
            warn(
                f"Store seeded with fallback data: {result.books_imported} books, "
                f"{result.verses_imported} verses."
            )
        elif result.partial or result.cancelled:
            warn(
                f"Import stopped early: {result.verses_imported} verses kept "
                f"({result.skipped_rows} rows skipped)."
            )
        else:
            ok(
                f"Imported {result.books_imported} books and {result.verses_imported} verses "
                f"({result.skipped_rows} rows skipped)."
            )
        return result

    # ---------- pipeline ----------

    def _import(self, dest: sqlite3.Connection, source_path: Path, result: ImportResult) -> None:
        ensure_canonical_schema(dest)

        src = connect(source_path, readonly=True)
        try:
            schema = detect(src)
            if not schema.found:
                raise SchemaUndetected(f"No books/verses relations found in {source_path}")
            result.translation_tag = schema.translation_tag

            if not safe_count(src, schema.books_table):
                raise SchemaUndetected(f"Source books table {schema.books_table!r} is empty or unreadable")

            result.books_imported = self._copy_books(src, dest, schema)

            try:
                self._copy_verses(src, dest, schema, result)
            except ImportPartialFailure as e:
                warn(f"Verse batch failed after {e.verses_committed} verses: {e}")
                result.partial = True
                result.error = str(e)
        finally:
            src.close()

        if result.verses_imported == 0:
            warn("No verses were imported; seeding the essential verse set.")
            result.verses_imported = seed_essential_verses(dest)
            result.degraded = True
            result.partial = False

    def _copy_books(self, src: sqlite3.Connection, dest: sqlite3.Connection, schema: DetectedSchema) -> int:
        """
        Replace the destination catalog with the source's books 1..66.

        Missing canonical ids are filled from the static catalog. Any failure
        writes the static catalog instead.
        """
        try:
            mapping = map_columns(table_columns(src, schema.books_table), BOOK_COLUMN_CANDIDATES)
            if mapping is None:
                warn(f"Books table {schema.books_table!r} has no id/name columns; using static catalog.")
                return seed_books(dest)

            rows = src.execute(
                f"SELECT {quote_ident(mapping['id'])}, {quote_ident(mapping['name'])} "
                f"FROM {quote_ident(schema.books_table)};"
            ).fetchall()

            books: Dict[int, str] = {}
            for raw_id, raw_name in rows:
                try:
                    book_id = int(raw_id)
                except (TypeError, ValueError):
                    continue
                name = "" if raw_name is None else str(raw_name).strip()
                if book_id in CANON_BOOK_IDS and name:
                    books[book_id] = name

            topped_up = 0
            for book_id, name in BOOKS:
                if book_id not in books:
                    books[book_id] = name
                    topped_up += 1
            if topped_up:
                info(f"Filled {topped_up} missing book(s) from the static catalog.")

            with dest:
                dest.execute("DELETE FROM books;")
                dest.executemany(
                    "INSERT INTO books (id, name) VALUES (?, ?);",
                    sorted(books.items()),
                )
        except sqlite3.Error as e:
            warn(f"Books copy failed ({e}); using static catalog.")
            return seed_books(dest)

        info(f"Books imported: {len(books)}")
        return len(books)

    def _copy_verses(
        self,
        src: sqlite3.Connection,
        dest: sqlite3.Connection,
        schema: DetectedSchema,
        result: ImportResult,
    ) -> None:
        mapping = map_columns(table_columns(src, schema.verses_table), VERSE_COLUMN_CANDIDATES)
        if mapping is None:
            raise SchemaUndetected(
                f"Verses table {schema.verses_table!r} lacks book/chapter/verse/text columns"
            )

        self.progress.verses_total = safe_count(src, schema.verses_table) or 0
        info(f"Verses in source: {self.progress.verses_total}")

        with dest:
            dest.execute("DELETE FROM verses;")

        cols = ", ".join(
            quote_ident(mapping[k]) for k in ("book_id", "chapter", "verse", "text")
        )
        cur = src.execute(f"SELECT {cols} FROM {quote_ident(schema.verses_table)};")

        while True:
            if self.cancel_event.is_set():
                warn("Import cancelled.")
                result.cancelled = True
                break

            try:
                raw = cur.fetchmany(self.batch_size)
                if not raw:
                    break
                batch, skipped = self._prepare_batch(raw)
                result.skipped_rows += skipped
                inserted = self._insert_batch(dest, batch) if batch else 0
            except (sqlite3.Error, OverflowError, ValueError, TypeError) as e:
                self._rollback(dest)
                raise ImportPartialFailure(str(e), result.verses_imported) from e

            result.verses_imported += inserted
            self.progress.verses_imported = result.verses_imported
            self.progress.batches_committed += 1
            info(
                f"Batch {self.progress.batches_committed}: "
                f"{self.progress.verses_imported}/{self.progress.verses_total} verses "
                f"({self.progress.percent}%)"
            )
            if self.on_progress is not None:
                self.on_progress(self.progress)

    @staticmethod
    def _prepare_batch(raw: Sequence[Sequence[object]]) -> Tuple[List[VerseTuple], int]:
        """
        Normalize source rows; drop rows with bad numbers, books outside 1..66,
        chapters or verses that do not fit a verse id, or empty text. Returns (rows, skipped_count).
        """
        batch: List[VerseTuple] = []
        skipped = 0
        for book_raw, chapter_raw, verse_raw, text_raw in raw:
            try:
                book_id = int(book_raw)
                chapter = int(chapter_raw)
                verse = int(verse_raw)
            except (TypeError, ValueError):
                skipped += 1
                continue
            text = "" if text_raw is None else str(text_raw).strip()
            if book_id not in CANON_BOOK_IDS or not reference_in_range(chapter, verse) or not text:
                skipped += 1
                continue
            batch.append((verse_id(book_id, chapter, verse), book_id, chapter, verse, text))
        return batch, skipped

    def _insert_batch(self, dest: sqlite3.Connection, batch: List[VerseTuple]) -> int:
        """
        Insert one batch in its own transaction; duplicates are ignored.

        Returns the number of rows actually inserted.
        """
        before = dest.total_changes
        with dest:
            dest.executemany(
                "INSERT OR IGNORE INTO verses (id, book_id, chapter, verse, text) "
                "VALUES (?, ?, ?, ?, ?);",
                batch,
            )
        return dest.total_changes - before

    # ---------- fallback ----------

    @staticmethod
    def _rollback(dest: sqlite3.Connection) -> None:
        try:
            dest.rollback()
        except sqlite3.Error as e:
            warn(f"Rollback failed: {e}")

    @staticmethod
    def _seed(dest: sqlite3.Connection, result: ImportResult, reason: str) -> None:
        seed_fallback(dest, reason, result)


def seed_fallback(
    dest: sqlite3.Connection,
    reason: Optional[str] = None,
    result: Optional[ImportResult] = None,
) -> ImportResult:
    """
    Fill `dest` with the Fallback Seeder data and mark the result degraded.

    Raises StoreUnopenable when `dest` cannot be written.
    """
    result = result or ImportResult()
    try:
        books, verses = seed_minimal(dest)
    except sqlite3.Error as e:
        raise StoreUnopenable(f"Store is not writable: {e}") from e
    result.books_imported = books
    result.verses_imported = verses
    result.degraded = True
    result.partial = False
    result.error = reason
    return result


def import_corpus(
    source_path: Path,
    store_path: Path,
    batch_size: int = IMPORT_BATCH_SIZE,
) -> ImportResult:
    """
    One-shot import of `source_path` into the store at `store_path`.
    """
    store_path = Path(store_path)
    store_path.parent.mkdir(parents=True, exist_ok=True)
    with get_conn(store_path) as conn:
        return Importer(batch_size=batch_size).run(conn, source_path)
