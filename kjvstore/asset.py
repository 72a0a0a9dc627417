"""
Bundled corpus asset handling.

The application ships a read-only SQLite file (data/KJV.db) holding the
corpus under `<prefix>_books` / `<prefix>_verses`. Before import it is copied
once to a writable location; later launches reuse that copy.

This module also builds such an asset from a CSV/XLSX verse sheet, which is
how the bundled file is produced in the first place.
"""

from __future__ import annotations

import os
import shutil
import sqlite3
from pathlib import Path
from typing import Iterable, Optional, Tuple

from .canon import BOOKS, resolve_book_id
from .db import quote_ident
from .errors import AssetUnavailable
from .seed import reference_in_range, verse_id
from .sheet_import import SheetVerseRow, iter_verses_from_sheet
from .util import info, ok, warn


class AssetMaterializer:
    """
    Copies the bundled asset to a writable path exactly once.

    `copies` counts the underlying copy operations (tests use it to check
    idempotence).
    """

    def __init__(self, asset_path: Path, local_path: Path):
        self.asset_path = Path(asset_path)
        self.local_path = Path(local_path)
        self.copies = 0

    def has_local_copy(self) -> bool:
        return self.local_path.exists() and self.local_path.stat().st_size > 0

    def ensure_local_copy(self) -> Path:
        """
        Return the writable copy, copying the asset first if needed.

        An existing non-empty copy is returned untouched. A zero-length asset
        produces a zero-length copy; the importer treats that as "no schema".

        Raises
        ------
        AssetUnavailable
            The asset is missing or cannot be read.
        """
        if self.has_local_copy():
            return self.local_path

        if not self.asset_path.is_file():
            raise AssetUnavailable(f"Bundled asset not found: {self.asset_path}")

        # local_path only ever holds a complete copy
        partial = self.local_path.with_name(self.local_path.name + ".part")
        try:
            self.local_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.asset_path, partial)
            os.replace(partial, self.local_path)
        except OSError as e:
            try:
                partial.unlink()
            except FileNotFoundError:
                pass
            raise AssetUnavailable(f"Could not copy asset {self.asset_path}: {e}") from e

        self.copies += 1
        size = self.local_path.stat().st_size
        if size == 0:
            warn(f"Bundled asset is empty: {self.asset_path}")
        else:
            info(f"Copied asset to {self.local_path} ({size} bytes)")
        return self.local_path

    def discard_local_copy(self) -> None:
        """Remove the writable copy so the next ensure_local_copy() re-reads the asset."""
        try:
            self.local_path.unlink()
            info(f"Removed asset copy: {self.local_path}")
        except FileNotFoundError:
            pass


# (book name or alias, chapter, verse, text)
AssetRow = Tuple[str, int, int, str]


def build_asset(
    rows: Iterable[AssetRow],
    out_path: Path,
    prefix: str = "kjv",
    overwrite: bool = False,
) -> Tuple[int, int]:
    """
    Write a bundled-asset file with `<prefix>_books` and `<prefix>_verses`.

    Book strings are resolved through the canon lookup; rows naming an
    unknown book are skipped with a warning. Returns (books, verses) written.
    """
    out_path = Path(out_path)
    if out_path.exists():
        if not overwrite:
            raise FileExistsError(f"Asset already exists: {out_path} (use overwrite)")
        out_path.unlink()
    out_path.parent.mkdir(parents=True, exist_ok=True)

    books_table = quote_ident(f"{prefix}_books")
    verses_table = quote_ident(f"{prefix}_verses")

    conn = sqlite3.connect(str(out_path))
    try:
        conn.executescript(
            f"""
            CREATE TABLE {books_table} (
                id    INTEGER PRIMARY KEY,
                name  TEXT NOT NULL
            );
            CREATE TABLE {verses_table} (
                id       INTEGER PRIMARY KEY,
                book_id  INTEGER NOT NULL,
                chapter  INTEGER NOT NULL,
                verse    INTEGER NOT NULL,
                text     TEXT NOT NULL
            );
            """
        )
        with conn:
            conn.executemany(f"INSERT INTO {books_table} (id, name) VALUES (?, ?);", BOOKS)

        skipped = 0
        unknown_books = set()
        before = conn.total_changes
        with conn:
            for book, chapter, verse, text in rows:
                book_id = resolve_book_id(book)
                if book_id is None:
                    if book not in unknown_books:
                        warn(f"Unknown book {book!r}; skipping its rows.")
                        unknown_books.add(book)
                    skipped += 1
                    continue
                if not reference_in_range(chapter, verse):
                    warn(f"{book} {chapter}:{verse} is out of range; skipping.")
                    skipped += 1
                    continue
                conn.execute(
                    f"INSERT OR IGNORE INTO {verses_table} "
                    "(id, book_id, chapter, verse, text) VALUES (?, ?, ?, ?, ?);",
                    (verse_id(book_id, chapter, verse), book_id, chapter, verse, text),
                )
        # duplicates ignored by INSERT OR IGNORE do not count
        written = conn.total_changes - before
    except Exception:
        conn.close()
        out_path.unlink()
        raise
    finally:
        conn.close()

    if skipped:
        warn(f"Skipped {skipped} row(s) with unknown books or out-of-range references.")
    ok(f"Built asset {out_path}: {len(BOOKS)} books, {written} verses (prefix {prefix!r}).")
    return len(BOOKS), written


def _sheet_rows(rows: Iterable[SheetVerseRow]) -> Iterable[AssetRow]:
    for row in rows:
        yield row.book, row.chapter, row.verse, row.text


def build_asset_from_sheet(
    sheet_path: Path,
    out_path: Path,
    prefix: str = "kjv",
    sheet_name: Optional[str] = None,
    overwrite: bool = False,
) -> Tuple[int, int]:
    """
    Build a bundled asset from a CSV or XLSX verse sheet.

    See kjvstore.sheet_import for the accepted column headers.
    """
    rows = iter_verses_from_sheet(Path(sheet_path), sheet_name=sheet_name)
    return build_asset(_sheet_rows(rows), out_path, prefix=prefix, overwrite=overwrite)
