"""
CSV / XLSX verse-sheet reader.

This module:
- Opens .xlsx files via openpyxl or .csv files via the csv module.
- Detects the header row's column mapping (book / chapter / verse / text).
- Yields normalized rows; malformed rows are skipped with a warning.

Used to build the bundled corpus asset (kjvstore.asset.build_asset_from_sheet).
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from openpyxl import load_workbook

from .util import info, warn


@dataclass
class SheetVerseRow:
    book: str          # book name or alias, resolved later
    chapter: int
    verse: int
    text: str
    raw_row_index: int  # for diagnostics


HEADER_CANDIDATES: Dict[str, List[str]] = {
    "book": ["book", "bookname", "bk", "booknumber", "bookid"],
    "chapter": ["chapter", "chap", "ch", "c", "chapternum"],
    "verse": ["verse", "versenum", "vs", "v"],
    "text": ["text", "versetext", "content", "body", "t"],
}

SHEET_SUFFIXES = (".xlsx", ".xlsm")


def _normalize_header(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip().lower().replace(" ", "").replace("-", "").replace("_", "")


def detect_column_mapping(headers: Sequence[object]) -> Optional[Dict[str, int]]:
    """
    Find which column index holds book/chapter/verse/text.

    Returns {'book': idx, 'chapter': idx, 'verse': idx, 'text': idx}, or None
    when any of them is missing.
    """
    norm_headers = [_normalize_header(h) for h in headers]
    mapping: Dict[str, int] = {}

    for logical_name, candidates in HEADER_CANDIDATES.items():
        idx_found = next((i for i, norm in enumerate(norm_headers) if norm in candidates), None)
        if idx_found is None:
            warn(f"Could not detect column for '{logical_name}'. Headers were: {list(headers)}")
            return None
        mapping[logical_name] = idx_found

    return mapping


def _rows_from_table(
    headers: Sequence[object],
    rows: Iterable[Sequence[object]],
    max_rows: Optional[int],
) -> Iterator[SheetVerseRow]:
    info(f"Detected header row: {list(headers)}")
    mapping = detect_column_mapping(headers)
    if mapping is None:
        warn("Failed to detect required columns; nothing imported.")
        return

    count = 0
    for row_idx, row in enumerate(rows, start=2):  # 1-based, +1 for header
        if max_rows is not None and count >= max_rows:
            info(f"Stopping after max_rows={max_rows} rows.")
            break

        try:
            book_raw = row[mapping["book"]]
            chapter_raw = row[mapping["chapter"]]
            verse_raw = row[mapping["verse"]]
            text_raw = row[mapping["text"]]
        except IndexError:
            warn(f"Row {row_idx}: not enough columns; skipping.")
            continue

        if book_raw in (None, "") or chapter_raw in (None, "") or verse_raw in (None, ""):
            warn(f"Row {row_idx}: missing book/chapter/verse; skipping.")
            continue

        text_str = "" if text_raw is None else str(text_raw).strip()
        if not text_str:
            warn(f"Row {row_idx}: empty verse text; skipping.")
            continue

        try:
            chapter_int = int(chapter_raw)
            verse_int = int(verse_raw)
        except (TypeError, ValueError):
            warn(f"Row {row_idx}: non-integer chapter/verse; skipping. "
                 f"chapter={chapter_raw!r}, verse={verse_raw!r}")
            continue

        if chapter_int < 1 or verse_int < 1:
            warn(f"Row {row_idx}: chapter/verse must be >= 1; skipping.")
            continue

        yield SheetVerseRow(
            book=str(book_raw).strip(),
            chapter=chapter_int,
            verse=verse_int,
            text=text_str,
            raw_row_index=row_idx,
        )
        count += 1


def _iter_csv(csv_path: Path, max_rows: Optional[int]) -> Iterator[SheetVerseRow]:
    info(f"Opening CSV file: {csv_path}")
    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.reader(f)
        try:
            headers = next(reader)
        except StopIteration:
            warn("CSV file is empty.")
            return
        yield from _rows_from_table(headers, reader, max_rows)


def _iter_xlsx(
    xlsx_path: Path,
    sheet_name: Optional[str],
    max_rows: Optional[int],
) -> Iterator[SheetVerseRow]:
    info(f"Opening Excel file: {xlsx_path}")
    wb = load_workbook(filename=str(xlsx_path), read_only=True, data_only=True)
    try:
        if sheet_name is None:
            ws = wb.active
            info(f"Using active sheet: {ws.title!r}")
        else:
            if sheet_name not in wb.sheetnames:
                raise ValueError(f"Sheet {sheet_name!r} not found. Available: {wb.sheetnames}")
            ws = wb[sheet_name]
            info(f"Using sheet: {ws.title!r}")

        rows = ws.iter_rows(values_only=True)
        try:
            headers = next(rows)
        except StopIteration:
            warn("Excel sheet is empty.")
            return
        yield from _rows_from_table(list(headers), rows, max_rows)
    finally:
        wb.close()


def iter_verses_from_sheet(
    sheet_path: Path,
    sheet_name: Optional[str] = None,
    max_rows: Optional[int] = None,
) -> Iterator[SheetVerseRow]:
    """
    Yield SheetVerseRow objects from an Excel (.xlsx) or CSV (.csv) file.

    Parameters
    ----------
    sheet_path:
        Path to the workbook or CSV file.
    sheet_name:
        Optional worksheet name (Excel only). If None, the active sheet is used.
    max_rows:
        Optional limit on the number of data rows yielded.

    Raises
    ------
    FileNotFoundError
        The file does not exist.
    ValueError
        Unsupported file extension, or unknown worksheet name.
    """
    sheet_path = Path(sheet_path).resolve()
    if not sheet_path.exists():
        raise FileNotFoundError(f"File not found: {sheet_path}")

    suffix = sheet_path.suffix.lower()
    if suffix == ".csv":
        yield from _iter_csv(sheet_path, max_rows)
    elif suffix in SHEET_SUFFIXES:
        yield from _iter_xlsx(sheet_path, sheet_name, max_rows)
    else:
        raise ValueError(f"Unsupported file format: {suffix}. Expected .csv, .xlsx or .xlsm")
