import sqlite3

import pytest

from kjvstore.db import ensure_canonical_schema
from kjvstore.errors import StoreUnhealthy
from kjvstore.seed import seed_minimal, verse_id
from kjvstore.status import diagnose, is_healthy, require_healthy


@pytest.fixture
def conn():
    c = sqlite3.connect(":memory:")
    yield c
    c.close()


def _fill_verses(conn, count):
    rows = []
    for i in range(count):
        book_id, k = i % 66 + 1, i // 66
        chapter, verse = k // 50 + 1, k % 50 + 1
        rows.append((verse_id(book_id, chapter, verse), book_id, chapter, verse, f"v{i}"))
    with conn:
        conn.execute("DELETE FROM verses")
        conn.executemany("INSERT INTO verses VALUES (?, ?, ?, ?, ?)", rows)


def test_missing_tables_is_unhealthy_not_an_error(conn):
    assert is_healthy(conn) is False
    report = diagnose(conn)
    assert report.tables_present == []
    assert "Missing required table" in report.message


def test_seeded_store_is_unhealthy(conn):
    seed_minimal(conn)
    report = diagnose(conn)
    assert report.book_count == 66
    assert report.verse_count > 0
    assert not report.healthy
    assert "Verses table incomplete" in report.message


def test_threshold_boundary(conn):
    seed_minimal(conn)
    _fill_verses(conn, 29999)
    assert not is_healthy(conn)

    _fill_verses(conn, 30000)
    assert is_healthy(conn)


def test_too_few_books(conn):
    ensure_canonical_schema(conn)
    _fill_verses(conn, 30000)
    with conn:
        conn.execute("INSERT INTO books VALUES (1, 'Genesis')")

    report = diagnose(conn)
    assert not report.healthy
    assert report.message.startswith("Books table incomplete")


def test_require_healthy_raises(conn):
    ensure_canonical_schema(conn)
    with pytest.raises(StoreUnhealthy):
        require_healthy(conn)
