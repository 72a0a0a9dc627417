"""
Integrity checks and health-report helpers for the scripture store.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, Optional

from .config import MIN_BOOK_COUNT, MIN_VERSE_COUNT
from .db import CANONICAL_TABLES, safe_count, table_exists
from .errors import StoreUnhealthy
from .model import HealthReport
from .util import info, warn

if TYPE_CHECKING:
    from .store import ScriptureStore


def diagnose(conn: sqlite3.Connection) -> HealthReport:
    """
    Inspect the canonical relations and describe what is there.

    Never raises: missing tables, or a file SQLite cannot read, simply make
    the report unhealthy.
    """
    report = HealthReport()
    try:
        report.tables_present = [t for t in CANONICAL_TABLES if table_exists(conn, t)]
    except sqlite3.Error as e:
        report.message = f"Store is unreadable: {e}"
        return report

    missing = [t for t in CANONICAL_TABLES if t not in report.tables_present]
    if missing:
        report.message = f"Missing required table(s): {', '.join(missing)}"
        return report

    report.book_count = safe_count(conn, "books") or 0
    report.verse_count = safe_count(conn, "verses") or 0

    if report.book_count < MIN_BOOK_COUNT:
        report.message = f"Books table incomplete: {report.book_count}/{MIN_BOOK_COUNT} books"
    elif report.verse_count < MIN_VERSE_COUNT:
        report.message = (
            f"Verses table incomplete: {report.verse_count} verses "
            f"(need at least {MIN_VERSE_COUNT})"
        )
    else:
        report.healthy = True
        report.message = (
            f"Store looks healthy: {report.book_count} books and {report.verse_count} verses"
        )
    return report


def is_healthy(conn: sqlite3.Connection) -> bool:
    """
    True iff both canonical tables exist, with at least MIN_BOOK_COUNT books
    and MIN_VERSE_COUNT verses.
    """
    return diagnose(conn).healthy


def require_healthy(conn: sqlite3.Connection) -> HealthReport:
    """
    Like diagnose(), but raise StoreUnhealthy when the check fails.
    """
    report = diagnose(conn)
    if not report.healthy:
        raise StoreUnhealthy(report.message)
    return report


def print_status(store: "ScriptureStore", report: Optional[HealthReport] = None) -> None:
    """
    Print a human-readable status report:

    - store, asset and asset-copy paths
    - lifecycle state and diagnostic
    - table / row counts
    """
    info(f"Store       : {store.db_path}")
    info(f"Asset       : {store.materializer.asset_path}")
    info(f"Asset copy  : {store.materializer.local_path}")
    info(f"State       : {store.status.value}")
    if store.diagnostic:
        info(f"Diagnostic  : {store.diagnostic}")

    if report is None:
        report = store.health()

    if report.healthy:
        info(report.message)
    else:
        warn(report.message)
    if report.tables_present:
        info(f"Books: {report.book_count}, verses: {report.verse_count}")
