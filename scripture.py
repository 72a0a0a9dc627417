#!/usr/bin/env python
"""
scripture.py – command-line front end for the KJV scripture store

Commands:

  python scripture.py status
      Show store paths, lifecycle state and row counts

  python scripture.py init
      Open the store, importing the bundled asset if needed

  python scripture.py repair | reload [--keep-copy]
      Re-run the import (reload also drops the tables and the asset copy)

  python scripture.py import path/to/source.db
      Import any Bible SQLite file into the store

  python scripture.py inspect path/to/source.db
      Show the tables of a source file and what the detector makes of them

  python scripture.py verse "John 3:16"
  python scripture.py chapter Psalms 23
  python scripture.py search "shepherd" --limit 10
  python scripture.py random | daily | emergency anxiety
  python scripture.py books | chapters Genesis

  python scripture.py build-asset verses.xlsx data/KJV.db --prefix kjv
      Build a bundled asset from a CSV/XLSX verse sheet

  python scripture.py pdf-chapter Psalms 23 reports/psalm23.pdf
      Export a chapter as a verse-per-line PDF
"""

import argparse
import datetime as dt
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from kjvstore import config
from kjvstore.asset import build_asset_from_sheet
from kjvstore.canon import resolve_book_id
from kjvstore.db import get_conn
from kjvstore.detect import describe_tables, detect
from kjvstore.devotional import EmergencyCategory
from kjvstore.errors import ScriptureStoreError
from kjvstore.importer import import_corpus
from kjvstore.model import ImportResult, Scripture
from kjvstore.paths import REPORTS_DIR, ensure_basic_dirs
from kjvstore.pdfgen import generate_chapter_pdf
from kjvstore.query import QueryEngine
from kjvstore.status import print_status
from kjvstore.store import ScriptureStore, StoreStatus
from kjvstore.util import error, info, ok, warn


# ---------- Output helpers ----------


def print_scriptures(rows: Iterable[Optional[Scripture]]) -> None:
    """
    Pretty-print verses to the console.
    """
    rows = [r for r in rows if r is not None]
    if not rows:
        info("No results.")
        return
    for s in rows:
        marker = "  (not in store)" if s.is_placeholder else ""
        print(f"{s.reference}{marker}")
        print(f"    {s.text}")
        print()


def print_import_result(result: Optional[ImportResult]) -> None:
    if result is None:
        warn("Import did not run: the store could not be written.")
        return
    info(
        f"books={result.books_imported} verses={result.verses_imported} "
        f"skipped={result.skipped_rows} tag={result.translation_tag!r}"
    )
    if result.degraded:
        warn(f"Degraded: fallback data was seeded ({result.error}).")
    if result.partial:
        warn(f"Partial: import stopped at a failed batch ({result.error}).")
    if result.cancelled:
        warn("Cancelled before completion.")


def _store(args: argparse.Namespace) -> ScriptureStore:
    return ScriptureStore(
        db_path=args.db,
        asset_path=args.asset,
        local_asset_path=args.local_asset,
    )


@contextmanager
def _engine(args: argparse.Namespace) -> Iterator[QueryEngine]:
    store = _store(args)
    try:
        yield QueryEngine(store)
    finally:
        store.close()


# ---------- Command handlers ----------


def cmd_status(args: argparse.Namespace) -> int:
    """
    Open the store (without repairing) and print its status.
    """
    store = _store(args)
    store.auto_repair = False
    store.open()
    print_status(store)
    store.close()
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    """
    Create data/ and reports/, then bring the store to READY.
    """
    ensure_basic_dirs()
    store = _store(args)
    ready = store.ensure_ready()
    print_status(store)
    if store.last_import is not None:
        print_import_result(store.last_import)
    store.close()
    return 0 if ready else 1


def cmd_repair(args: argparse.Namespace) -> int:
    store = _store(args)
    store.open()
    result = store.repair()
    print_import_result(result)
    status = store.status
    store.close()
    return 0 if status is StoreStatus.READY else 1


def cmd_reload(args: argparse.Namespace) -> int:
    """
    Drop the store tables and re-import from the bundled asset.
    """
    store = _store(args)
    store.open()
    result = store.reload(force=not args.keep_copy)
    print_import_result(result)
    status = store.status
    store.close()
    return 0 if status is StoreStatus.READY else 1


def cmd_import(args: argparse.Namespace) -> int:
    """
    Import an arbitrary source file straight into the store.
    """
    source = Path(args.source)
    if not source.exists():
        warn(f"Source file not found: {source}")
        return 1
    store = _store(args)
    result = import_corpus(source, store.db_path, batch_size=args.batch_size)
    print_import_result(result)
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    """
    Dump the tables of a source file and the detected schema.
    """
    source = Path(args.source)
    if not source.exists():
        warn(f"Source file not found: {source}")
        return 1
    with get_conn(source, readonly=True) as conn:
        for table in describe_tables(conn):
            print(f"{table['name']}: {table['rows']} row(s)")
            print(f"    columns: {', '.join(table['columns'])}")
        schema = detect(conn)
    if schema.found:
        ok(
            f"books={schema.books_table!r} verses={schema.verses_table!r} "
            f"tag={schema.translation_tag!r}"
        )
        return 0
    warn("No books/verses relations detected; an import would seed fallback data.")
    return 1


def cmd_books(args: argparse.Namespace) -> int:
    with _engine(args) as engine:
        books = engine.get_all_books()
    for book in books:
        print(f"{book.id:>2}  {book.name}")
    return 0


def cmd_chapters(args: argparse.Namespace) -> int:
    book_id = resolve_book_id(args.book)
    if book_id is None:
        warn(f"Unknown book: {args.book!r}")
        return 1
    with _engine(args) as engine:
        count = engine.get_chapter_count(book_id)
    print(f"{args.book}: {count} chapter(s)")
    return 0


def cmd_verse(args: argparse.Namespace) -> int:
    with _engine(args) as engine:
        scripture = engine.get_scripture_by_reference(args.ref)
    print_scriptures([scripture])
    return 0 if scripture is not None else 1


def cmd_chapter(args: argparse.Namespace) -> int:
    with _engine(args) as engine:
        print_scriptures(engine.get_chapter(args.book, args.chapter))
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    with _engine(args) as engine:
        print_scriptures(engine.search(args.query, limit=args.limit))
    return 0


def cmd_random(args: argparse.Namespace) -> int:
    with _engine(args) as engine:
        print_scriptures([engine.get_random_verse()])
    return 0


def cmd_daily(args: argparse.Namespace) -> int:
    day = dt.date.fromisoformat(args.date) if args.date else None
    with _engine(args) as engine:
        print_scriptures([engine.get_daily_scripture(day)])
    return 0


def cmd_emergency(args: argparse.Namespace) -> int:
    with _engine(args) as engine:
        print_scriptures([engine.get_emergency_scripture(args.category)])
    return 0


def cmd_build_asset(args: argparse.Namespace) -> int:
    """
    Build a bundled asset (<prefix>_books / <prefix>_verses) from a verse sheet.
    """
    sheet = Path(args.sheet_file)
    if not sheet.exists():
        warn(f"Sheet not found: {sheet}")
        return 1
    try:
        build_asset_from_sheet(
            sheet,
            Path(args.output),
            prefix=args.prefix,
            sheet_name=args.sheet,
            overwrite=args.overwrite,
        )
    except (FileExistsError, ValueError) as e:
        error(str(e))
        return 1
    return 0


def cmd_pdf_chapter(args: argparse.Namespace) -> int:
    """
    Export one chapter as a verse-per-line PDF.
    """
    with _engine(args) as engine:
        rows = engine.get_chapter(args.book, args.chapter)
    if not rows:
        warn("No verses available; no PDF generated.")
        return 1
    output = Path(args.output) if args.output else REPORTS_DIR / f"{args.book}_{args.chapter}.pdf"
    title = f"{rows[0].book_name} {args.chapter} (KJV)"
    generate_chapter_pdf(output, title, rows)
    return 0


# ---------- Parser setup ----------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scripture",
        description=f"{config.APP_NAME} CLI (v{config.__version__})",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="Path to the local store (default: $KJVSTORE_DB or data/scripture.sqlite)",
    )
    parser.add_argument(
        "--asset",
        type=str,
        default=None,
        help="Path to the bundled asset (default: $KJVSTORE_ASSET or data/KJV.db)",
    )
    parser.add_argument(
        "--local-asset",
        type=str,
        default=None,
        help="Where the writable asset copy lives (default: data/KJV_source.db)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # status
    p_status = sub.add_parser("status", help="Show store paths, state and counts")
    p_status.set_defaults(func=cmd_status)

    # init
    p_init = sub.add_parser("init", help="Open the store, importing the asset if needed")
    p_init.set_defaults(func=cmd_init)

    # repair
    p_repair = sub.add_parser("repair", help="Re-import the bundled asset into the store")
    p_repair.set_defaults(func=cmd_repair)

    # reload
    p_reload = sub.add_parser(
        "reload",
        help="Drop the store tables and rebuild from the bundled asset",
    )
    p_reload.add_argument(
        "--keep-copy",
        action="store_true",
        help="Reuse the existing asset copy instead of copying the asset again",
    )
    p_reload.set_defaults(func=cmd_reload)

    # import
    p_import = sub.add_parser("import", help="Import a Bible SQLite file into the store")
    p_import.add_argument("source", type=str, help="Path to the source SQLite file")
    p_import.add_argument(
        "--batch-size",
        type=int,
        default=config.IMPORT_BATCH_SIZE,
        help=f"Verses per committed batch (default: {config.IMPORT_BATCH_SIZE})",
    )
    p_import.set_defaults(func=cmd_import)

    # inspect
    p_inspect = sub.add_parser("inspect", help="Show the tables of a source file")
    p_inspect.add_argument("source", type=str, help="Path to the source SQLite file")
    p_inspect.set_defaults(func=cmd_inspect)

    # books
    p_books = sub.add_parser("books", help="List the 66 books")
    p_books.set_defaults(func=cmd_books)

    # chapters
    p_chapters = sub.add_parser("chapters", help="Number of chapters in a book")
    p_chapters.add_argument("book", type=str, help="Book name, e.g. 'Genesis' or '1 John'")
    p_chapters.set_defaults(func=cmd_chapters)

    # verse
    p_verse = sub.add_parser("verse", help="Look up a verse (e.g. 'John 3:16')")
    p_verse.add_argument("ref", type=str, help="Reference string, e.g. 'John 3:16'")
    p_verse.set_defaults(func=cmd_verse)

    # chapter
    p_chapter = sub.add_parser("chapter", help="Print a whole chapter")
    p_chapter.add_argument("book", type=str, help="Book name")
    p_chapter.add_argument("chapter", type=int, help="Chapter number")
    p_chapter.set_defaults(func=cmd_chapter)

    # search
    p_search = sub.add_parser("search", help="Search verses for a text phrase")
    p_search.add_argument("query", type=str, help="Search text (at least 2 characters)")
    p_search.add_argument(
        "--limit",
        type=int,
        default=config.DEFAULT_SEARCH_LIMIT,
        help=f"Maximum number of verses to return (default: {config.DEFAULT_SEARCH_LIMIT})",
    )
    p_search.set_defaults(func=cmd_search)

    # random
    p_random = sub.add_parser("random", help="Print a random verse")
    p_random.set_defaults(func=cmd_random)

    # daily
    p_daily = sub.add_parser("daily", help="Print the verse of the day")
    p_daily.add_argument("--date", type=str, default=None, help="ISO date (default: today)")
    p_daily.set_defaults(func=cmd_daily)

    # emergency
    p_emergency = sub.add_parser("emergency", help="Print a verse for a moment of need")
    p_emergency.add_argument(
        "category",
        type=str,
        choices=[c.value for c in EmergencyCategory],
        help="Category",
    )
    p_emergency.set_defaults(func=cmd_emergency)

    # build-asset
    p_build = sub.add_parser("build-asset", help="Build a bundled asset from a CSV/XLSX sheet")
    p_build.add_argument("sheet_file", type=str, help="Path to the .csv or .xlsx verse sheet")
    p_build.add_argument("output", type=str, help="Asset file to write")
    p_build.add_argument("--prefix", type=str, default="kjv", help="Table prefix (default: kjv)")
    p_build.add_argument("--sheet", type=str, default=None, help="Worksheet name (default: active sheet)")
    p_build.add_argument("--overwrite", action="store_true", help="Replace an existing asset file")
    p_build.set_defaults(func=cmd_build_asset)

    # pdf-chapter
    p_pdf = sub.add_parser("pdf-chapter", help="Export a chapter as a PDF")
    p_pdf.add_argument("book", type=str, help="Book name")
    p_pdf.add_argument("chapter", type=int, help="Chapter number")
    p_pdf.add_argument("output", type=str, nargs="?", default=None, help="Output PDF path")
    p_pdf.set_defaults(func=cmd_pdf_chapter)

    return parser


# ---------- Main ----------


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except ScriptureStoreError as e:
        error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
