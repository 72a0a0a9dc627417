"""
Schema detection for arbitrary Bible source files.

The bundled asset (or any file handed to the importer) stores the books and
verses relations under names we do not control: `KJV_books`, `niv_verses`,
`bible_verse`, or something else entirely. detect() inspects the catalog and
column shapes, read-only, and reports where the two relations are.

Heuristics, first match wins:
1. `<prefix>_books` with a sibling `<prefix>_verses`  (prefix = translation tag)
2. first table whose name contains "book" / "verse"
3. column shape: (id, name, <= 5 columns) / (book_id, chapter, verse, text)

Each later heuristic only fills the slots the earlier ones left empty. When
one slot stays empty the result is the null descriptor: the caller seeds
instead of importing.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .db import connect, list_user_tables, safe_count, table_columns
from .model import DetectedSchema
from .util import info, warn

BOOKS_SUFFIX = "_books"
VERSES_SUFFIX = "_verses"
MAX_BOOKS_COLUMNS = 5
BOOKS_SHAPE = {"id", "name"}
VERSES_SHAPE = {"book_id", "chapter", "verse", "text"}


def _match_prefixed_pair(tables: List[str]) -> Optional[DetectedSchema]:
    lowered = {t.lower(): t for t in tables}
    for table in tables:
        if not table.lower().endswith(BOOKS_SUFFIX):
            continue
        prefix = table[: -len(BOOKS_SUFFIX)]
        if not prefix:
            continue
        sibling = lowered.get(f"{prefix}{VERSES_SUFFIX}".lower())
        if sibling is not None:
            return DetectedSchema(books_table=table, verses_table=sibling, translation_tag=prefix)
    return None


def _tag_from(name: Optional[str]) -> Optional[str]:
    if name and "_" in name:
        tag = name.split("_", 1)[0]
        return tag or None
    return None


def _match_shapes(
    conn: sqlite3.Connection,
    tables: List[str],
    books_table: Optional[str],
    verses_table: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    for table in tables:
        if books_table and verses_table:
            break
        try:
            columns = {c.lower() for c in table_columns(conn, table)}
        except sqlite3.Error as e:
            warn(f"Could not read columns of {table!r}: {e}")
            continue

        if books_table is None and BOOKS_SHAPE <= columns and len(columns) <= MAX_BOOKS_COLUMNS:
            info(f"Identified {table!r} as likely books table (column shape).")
            books_table = table
        elif verses_table is None and VERSES_SHAPE <= columns:
            info(f"Identified {table!r} as likely verses table (column shape).")
            verses_table = table
    return books_table, verses_table


def detect(conn: sqlite3.Connection) -> DetectedSchema:
    """
    Locate the books and verses relations in an open source database.

    Never mutates the source and never raises: a file with no relations, or
    one SQLite cannot read at all, yields DetectedSchema.empty().
    """
    try:
        tables = list_user_tables(conn)
    except sqlite3.Error as e:
        warn(f"Could not read source catalog: {e}")
        return DetectedSchema.empty()

    if not tables:
        warn("Source has no tables.")
        return DetectedSchema.empty()

    info(f"Tables found in source: {', '.join(tables)}")

    paired = _match_prefixed_pair(tables)
    if paired is not None:
        info(
            f"Detected prefixed pair: books={paired.books_table!r}, "
            f"verses={paired.verses_table!r}, tag={paired.translation_tag!r}"
        )
        return paired

    books_table = next((t for t in tables if "book" in t.lower()), None)
    verses_table = next((t for t in tables if "verse" in t.lower() and t != books_table), None)

    if not (books_table and verses_table):
        books_table, verses_table = _match_shapes(conn, tables, books_table, verses_table)

    if books_table and verses_table:
        tag = _tag_from(books_table) or _tag_from(verses_table)
        info(f"Detected tables: books={books_table!r}, verses={verses_table!r}, tag={tag!r}")
        return DetectedSchema(books_table=books_table, verses_table=verses_table, translation_tag=tag)

    warn("Could not identify book or verse tables in source.")
    return DetectedSchema.empty()


def detect_file(path: Path) -> DetectedSchema:
    """
    Open `path` read-only and run detect() on it.

    A missing file also yields the null descriptor.
    """
    path = Path(path)
    if not path.exists():
        warn(f"Source file not found: {path}")
        return DetectedSchema.empty()
    try:
        conn = connect(path, readonly=True)
    except sqlite3.Error as e:
        warn(f"Could not open source {path}: {e}")
        return DetectedSchema.empty()
    try:
        return detect(conn)
    finally:
        conn.close()


def describe_tables(conn: sqlite3.Connection) -> List[Dict[str, object]]:
    """
    Diagnostic dump: every user table with its columns and row count.

    Returns [] for an unreadable file.
    """
    try:
        tables = list_user_tables(conn)
    except sqlite3.Error as e:
        warn(f"Could not read catalog: {e}")
        return []

    described: List[Dict[str, object]] = []
    for table in tables:
        try:
            columns = table_columns(conn, table)
        except sqlite3.Error:
            columns = []
        described.append({"name": table, "columns": columns, "rows": safe_count(conn, table)})
    return described
