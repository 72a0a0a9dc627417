"""
Database connection management and catalog helpers for the scripture store.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, List, Optional


CANONICAL_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS books (
    id    INTEGER PRIMARY KEY,
    name  TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS verses (
    id       INTEGER PRIMARY KEY,
    book_id  INTEGER NOT NULL,
    chapter  INTEGER NOT NULL CHECK (chapter >= 1),
    verse    INTEGER NOT NULL CHECK (verse >= 1),
    text     TEXT NOT NULL CHECK (length(text) > 0)
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_verses_book_chapter_verse
    ON verses (book_id, chapter, verse);
"""

CANONICAL_TABLES = ("books", "verses")


def connect(path: Path, readonly: bool = False, shared: bool = False) -> sqlite3.Connection:
    """
    Open a SQLite connection.

    Args:
        path: database file
        readonly: open with mode=ro (the file must exist; nothing is created)
        shared: allow use from threads other than the creating one

    Returns:
        sqlite3.Connection (plain tuples as rows)
    """
    if readonly:
        uri = f"{Path(path).resolve().as_uri()}?mode=ro"
        return sqlite3.connect(uri, uri=True, check_same_thread=not shared)
    return sqlite3.connect(str(path), check_same_thread=not shared)


@contextmanager
def get_conn(path: Path, readonly: bool = False) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for short-lived database connections.

    Yields:
        sqlite3.Connection, closed on exit
    """
    conn = connect(path, readonly=readonly)
    try:
        yield conn
    finally:
        conn.close()


def ensure_canonical_schema(conn: sqlite3.Connection) -> None:
    """
    Create the canonical books/verses relations and their index (idempotent).
    """
    conn.executescript(CANONICAL_SCHEMA_SQL)
    conn.commit()


def quote_ident(name: str) -> str:
    """Quote an identifier taken from a source catalog."""
    return '"' + name.replace('"', '""') + '"'


def list_user_tables(conn: sqlite3.Connection) -> List[str]:
    """
    Return user tables in catalog order.

    System tables (sqlite_*, android_*), virtual tables and the shadow
    tables that back them are excluded.
    """
    rows = conn.execute(
        """
        SELECT name, COALESCE(sql, '')
        FROM sqlite_master
        WHERE type = 'table'
          AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\'
          AND name NOT LIKE 'android\\_%' ESCAPE '\\'
        ORDER BY rowid;
        """
    ).fetchall()

    virtual = [name for name, sql in rows if sql.upper().startswith("CREATE VIRTUAL")]
    tables: List[str] = []
    for name, _sql in rows:
        if name in virtual:
            continue
        if any(name.startswith(v + "_") for v in virtual):
            continue
        tables.append(name)
    return tables


def table_exists(conn: sqlite3.Connection, name: str) -> bool:
    cur = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?;",
        (name,),
    )
    return cur.fetchone() is not None


def table_columns(conn: sqlite3.Connection, table: str) -> List[str]:
    """Column names of a table, in declaration order."""
    cur = conn.execute(f"PRAGMA table_info({quote_ident(table)});")
    # row = cid, name, type, notnull, dflt_value, pk
    return [row[1] for row in cur.fetchall()]


def count_rows(conn: sqlite3.Connection, table: str) -> int:
    (count,) = conn.execute(f"SELECT COUNT(*) FROM {quote_ident(table)};").fetchone()
    return int(count)


def safe_count(conn: sqlite3.Connection, table: str) -> Optional[int]:
    """Row count, or None when the table is missing or unreadable."""
    try:
        return count_rows(conn, table)
    except sqlite3.Error:
        return None
