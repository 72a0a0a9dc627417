import sqlite3
import threading

import pytest

from kjvstore.db import connect, count_rows, ensure_canonical_schema
from kjvstore.errors import StoreUnopenable
from kjvstore.importer import Importer, import_corpus, map_columns, VERSE_COLUMN_CANDIDATES
from kjvstore.seed import ESSENTIAL_VERSES
from kjvstore.status import is_healthy


@pytest.fixture
def dest(tmp_path):
    conn = sqlite3.connect(str(tmp_path / "store.sqlite"))
    yield conn
    conn.close()


class FailingImporter(Importer):
    """Raises `exc` on the N-th verse batch (1-based)."""

    def __init__(self, fail_on, exc=None, **kwargs):
        super().__init__(**kwargs)
        self.fail_on = fail_on
        self.exc = exc or sqlite3.OperationalError("disk I/O error")
        self.calls = 0

    def _insert_batch(self, dest, batch):
        self.calls += 1
        if self.calls == self.fail_on:
            raise self.exc
        return super()._insert_batch(dest, batch)


def test_full_niv_asset_imports_healthy(dest, niv_asset, corpus_rows):
    seen = []
    importer = Importer(on_progress=lambda p: seen.append(p.verses_imported))

    result = importer.run(dest, niv_asset)

    assert result.books_imported == 66
    assert result.verses_imported == len(corpus_rows) == 31102
    assert result.translation_tag == "niv"
    assert not result.degraded and not result.partial and not result.cancelled
    assert is_healthy(dest)
    assert len(seen) == 32
    assert seen[0] == 1000 and seen[-1] == 31102
    assert importer.progress.percent == 100


def test_partial_failure_keeps_committed_batches(dest, niv_asset):
    importer = FailingImporter(fail_on=3, batch_size=1000)

    result = importer.run(dest, niv_asset)

    assert result.partial
    assert not result.degraded
    assert result.verses_imported == 2000
    assert count_rows(dest, "verses") == 2000
    assert count_rows(dest, "books") == 66
    assert "disk I/O error" in result.error


def test_failure_on_first_batch_seeds_curated_verses(dest, niv_asset):
    result = FailingImporter(fail_on=1, batch_size=1000).run(dest, niv_asset)

    assert result.degraded
    assert not result.partial
    assert count_rows(dest, "verses") == len(ESSENTIAL_VERSES)
    assert count_rows(dest, "books") == 66


def test_missing_source_falls_back_to_seed(dest, tmp_path):
    result = Importer().run(dest, tmp_path / "nope.db")

    assert result.degraded
    assert result.books_imported == 66
    assert result.verses_imported == len(ESSENTIAL_VERSES)
    assert result.error


def test_zero_length_source_falls_back_to_seed(dest, tmp_path):
    empty = tmp_path / "empty.db"
    empty.write_bytes(b"")

    result = Importer().run(dest, empty)

    assert result.degraded
    assert count_rows(dest, "books") == 66
    assert count_rows(dest, "verses") == len(ESSENTIAL_VERSES)


def test_empty_books_table_falls_back_to_seed(dest, make_source):
    source = make_source([(1, 1, 1, "In the beginning")], books=[])

    result = Importer().run(dest, source)

    assert result.degraded
    assert count_rows(dest, "verses") == len(ESSENTIAL_VERSES)


def test_missing_books_are_topped_up_from_catalog(dest, make_source):
    books = [(i, f"Book-{i}") for i in range(1, 11)] + [(70, "Apocrypha")]
    source = make_source([(1, 1, 1, "In the beginning")], books=books)

    result = Importer().run(dest, source)

    assert result.books_imported == 66
    names = dict(dest.execute("SELECT id, name FROM books").fetchall())
    assert len(names) == 66
    assert names[1] == "Book-1"
    assert names[66] == "Revelation"
    assert 70 not in names


def test_duplicate_book_names_fall_back_to_static_catalog(dest, make_source):
    books = [(1, "Same"), (2, "Same")]
    source = make_source([(1, 1, 1, "In the beginning")], books=books)

    result = Importer().run(dest, source)

    assert result.books_imported == 66
    assert dest.execute("SELECT name FROM books WHERE id = 1").fetchone()[0] == "Genesis"
    assert not result.degraded


def test_invalid_and_duplicate_rows_are_skipped(dest, make_source):
    verses = [
        (1, 1, 1, "In the beginning"),
        (1, 1, 1, "duplicate reference"),
        (1, 1, 2, ""),
        (99, 1, 1, "unknown book"),
        (1, None, 3, "no chapter"),
        (1, 1, 4, "And God saw the light"),
    ]
    source = make_source(verses)

    result = Importer().run(dest, source)

    assert result.verses_imported == 2
    assert result.skipped_rows == 3
    texts = [r[0] for r in dest.execute("SELECT text FROM verses ORDER BY id")]
    assert texts == ["In the beginning", "And God saw the light"]


def test_verse_columns_are_mapped_by_candidates(dest, make_source):
    source = make_source(
        [(43, 3, 16, "For God so loved the world")],
        prefix="web",
        verse_columns=("book", "chapter_num", "verse_num", "verse_text"),
    )

    result = Importer().run(dest, source)

    assert result.translation_tag == "web"
    assert result.verses_imported == 1
    assert dest.execute("SELECT id FROM verses").fetchone()[0] == 43003016


def test_unmappable_verse_columns_seed(dest, make_source):
    source = make_source(
        [(1, 1, 1, "x")],
        verse_columns=("a", "b", "c", "d"),
    )

    result = Importer().run(dest, source)

    assert result.degraded


def test_cancel_between_batches(dest, niv_asset):
    cancel = threading.Event()
    importer = Importer(batch_size=1000, cancel_event=cancel, on_progress=lambda p: cancel.set())

    result = importer.run(dest, niv_asset)

    assert result.cancelled
    assert not result.degraded
    assert result.verses_imported == 1000
    assert count_rows(dest, "verses") == 1000


def test_unwritable_destination_raises_store_unopenable(tmp_path):
    path = tmp_path / "ro.sqlite"
    conn = sqlite3.connect(str(path))
    ensure_canonical_schema(conn)
    conn.close()

    ro = connect(path, readonly=True)
    try:
        with pytest.raises(StoreUnopenable):
            Importer().run(ro, tmp_path / "missing.db")
    finally:
        ro.close()


def test_reimport_replaces_previous_verses(dest, make_source):
    first = make_source([(1, 1, 1, "old"), (1, 1, 2, "old two")])
    second = make_source([(1, 1, 1, "new")])

    Importer().run(dest, first)
    Importer().run(dest, second)

    assert dest.execute("SELECT text FROM verses").fetchall() == [("new",)]


def test_import_corpus_creates_store(tmp_path, make_source):
    source = make_source([(1, 1, 1, "In the beginning")])
    store_path = tmp_path / "nested" / "store.sqlite"

    result = import_corpus(source, store_path)

    assert result.verses_imported == 1
    assert store_path.exists()


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        Importer(batch_size=0)


def test_map_columns():
    mapping = map_columns(["ID", "Book", "Chapter", "Verse", "Text"], VERSE_COLUMN_CANDIDATES)
    assert mapping == {"book_id": "Book", "chapter": "Chapter", "verse": "Verse", "text": "Text"}
    assert map_columns(["id", "name"], VERSE_COLUMN_CANDIDATES) is None


def test_overflowing_batch_is_a_partial_failure(dest, niv_asset):
    exc = OverflowError("Python int too large to convert to SQLite INTEGER")
    importer = FailingImporter(fail_on=2, exc=exc, batch_size=1000)

    result = importer.run(dest, niv_asset)

    assert result.partial
    assert not result.degraded
    assert result.verses_imported == 1000
    assert count_rows(dest, "verses") == 1000


def test_unexpected_error_falls_back_to_seed(dest, niv_asset):
    class BrokenBooks(Importer):
        def _copy_books(self, src, dest, schema):
            raise RuntimeError("books exploded")

    result = BrokenBooks().run(dest, niv_asset)

    assert result.degraded
    assert "books exploded" in result.error
    assert count_rows(dest, "books") == 66
    assert count_rows(dest, "verses") == len(ESSENTIAL_VERSES)


def test_references_that_do_not_fit_a_verse_id_are_skipped(dest, make_source):
    verses = [
        (1, 1, 1, "In the beginning"),
        (1, 10 ** 16, 1, "huge chapter"),
        (1, 1000, 1, "would collide with Genesis 2:1"),
        (1, 2, 1000, "would collide with Genesis 3:0"),
        (1, 2, 1, "Thus the heavens and the earth were finished"),
    ]
    source = make_source(verses)

    result = Importer().run(dest, source)

    assert not result.degraded and not result.partial
    assert result.verses_imported == 2
    assert result.skipped_rows == 3
    texts = [r[0] for r in dest.execute("SELECT text FROM verses ORDER BY id")]
    assert texts == ["In the beginning", "Thus the heavens and the earth were finished"]
