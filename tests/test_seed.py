import sqlite3

import pytest

from kjvstore.canon import BOOKS, resolve_book_id
from kjvstore.devotional import DAILY_REFERENCES
from kjvstore.seed import ESSENTIAL_VERSES, seed_books, seed_minimal, verse_id


@pytest.fixture
def conn():
    c = sqlite3.connect(":memory:")
    yield c
    c.close()


def _dump(conn):
    return (
        conn.execute("SELECT id, name FROM books ORDER BY id").fetchall(),
        conn.execute("SELECT * FROM verses ORDER BY id").fetchall(),
    )


def test_seed_is_deterministic(conn):
    seed_minimal(conn)
    first = _dump(conn)
    seed_minimal(conn)
    assert _dump(conn) == first


def test_seed_writes_exact_catalog(conn):
    assert seed_minimal(conn) == (66, len(ESSENTIAL_VERSES))
    books, _ = _dump(conn)
    assert books == list(BOOKS)
    assert (9, "I Samuel") in books
    assert (64, "III John") in books


def test_seed_verse_ids_follow_reference(conn):
    seed_minimal(conn)
    row = conn.execute(
        "SELECT id, text FROM verses WHERE book_id = 43 AND chapter = 3 AND verse = 16"
    ).fetchone()
    assert row[0] == 43003016 == verse_id(43, 3, 16)
    assert row[1].startswith("For God so loved the world")


@pytest.mark.parametrize(
    "ref",
    [(1, 1, 5), (43, 1, 5), (45, 8, 31), (50, 4, 8), (19, 23, 6), (20, 3, 6), (23, 53, 5), (40, 28, 20)],
)
def test_seed_contains_curated_passages(conn, ref):
    seed_minimal(conn)
    count = conn.execute(
        "SELECT COUNT(*) FROM verses WHERE book_id = ? AND chapter = ? AND verse = ?", ref
    ).fetchone()[0]
    assert count == 1


def test_seed_covers_daily_rotation():
    seeded = {(b, c, v) for b, c, v, _ in ESSENTIAL_VERSES}
    for ref in DAILY_REFERENCES:
        assert (resolve_book_id(ref.book), ref.chapter, ref.verse) in seeded


def test_seed_replaces_existing_rows(conn):
    seed_minimal(conn)
    with conn:
        conn.execute("UPDATE books SET name = 'Changed' WHERE id = 1")
        conn.execute("INSERT INTO verses VALUES (99, 1, 2, 1, 'extra')")

    seed_minimal(conn)

    assert conn.execute("SELECT name FROM books WHERE id = 1").fetchone()[0] == "Genesis"
    assert conn.execute("SELECT COUNT(*) FROM verses WHERE id = 99").fetchone()[0] == 0


def test_seed_books_leaves_verses_alone(conn):
    seed_minimal(conn)
    with conn:
        conn.execute("DELETE FROM books")

    assert seed_books(conn) == 66
    assert conn.execute("SELECT COUNT(*) FROM verses").fetchone()[0] == len(ESSENTIAL_VERSES)
