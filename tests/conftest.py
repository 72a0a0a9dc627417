import sqlite3
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import pytest

from kjvstore.canon import BOOKS
from kjvstore.store import ScriptureStore

JOHN_3_16 = (
    "For God so loved the world, that he gave his only begotten Son, that whosoever "
    "believeth in him should not perish, but have everlasting life."
)

FULL_VERSE_COUNT = 31102

# (book_id, chapter, verse, text)
VerseRow = Tuple[int, int, int, str]


def _synthetic_corpus(count: int = FULL_VERSE_COUNT) -> List[VerseRow]:
    rows: List[VerseRow] = []
    for i in range(count):
        book_id = i % 66 + 1
        k = i // 66
        chapter, verse = k // 50 + 1, k % 50 + 1
        text = JOHN_3_16 if (book_id, chapter, verse) == (43, 3, 16) else f"Synthetic verse {i}"
        rows.append((book_id, chapter, verse, text))
    return rows


def write_source(
    path: Path,
    verses: Iterable[Sequence[object]],
    prefix: Optional[str] = "kjv",
    books: Iterable[Tuple[int, str]] = BOOKS,
    books_table: Optional[str] = None,
    verses_table: Optional[str] = None,
    verse_columns: Sequence[str] = ("book_id", "chapter", "verse", "text"),
) -> Path:
    """Write a source file shaped like a bundled asset."""
    books_table = books_table or f"{prefix}_books"
    verses_table = verses_table or f"{prefix}_verses"
    cols = ", ".join(verse_columns)
    conn = sqlite3.connect(str(path))
    try:
        conn.execute(f'CREATE TABLE "{books_table}" (id INTEGER PRIMARY KEY, name TEXT)')
        conn.execute(f'CREATE TABLE "{verses_table}" (id INTEGER PRIMARY KEY, {cols})')
        conn.executemany(f'INSERT INTO "{books_table}" (id, name) VALUES (?, ?)', list(books))
        conn.executemany(
            f'INSERT INTO "{verses_table}" ({cols}) VALUES (?, ?, ?, ?)',
            [tuple(v) for v in verses],
        )
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in ("KJVSTORE_DB", "KJVSTORE_ASSET", "KJVSTORE_LOCAL_ASSET"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("KJVSTORE_QUIET", "1")


@pytest.fixture(scope="session")
def corpus_rows() -> List[VerseRow]:
    return _synthetic_corpus()


@pytest.fixture(scope="session")
def niv_asset(tmp_path_factory, corpus_rows) -> Path:
    """A complete asset with niv_-prefixed tables: 66 books, 31,102 verses."""
    path = tmp_path_factory.mktemp("assets") / "niv.db"
    return write_source(path, corpus_rows, prefix="niv")


@pytest.fixture
def make_source(tmp_path) -> Callable[..., Path]:
    counter = {"n": 0}

    def _make(verses: Iterable[Sequence[object]], name: Optional[str] = None, **kwargs) -> Path:
        counter["n"] += 1
        path = tmp_path / (name or f"source_{counter['n']}.db")
        return write_source(path, verses, **kwargs)

    return _make


@pytest.fixture
def store_factory(tmp_path) -> Callable[..., ScriptureStore]:
    stores: List[ScriptureStore] = []

    def _make(asset_path: Optional[Path] = None, **kwargs) -> ScriptureStore:
        kwargs.setdefault("db_path", tmp_path / "store.sqlite")
        kwargs.setdefault("local_asset_path", tmp_path / "asset_copy.db")
        store = ScriptureStore(
            asset_path=asset_path or tmp_path / "missing_asset.db",
            **kwargs,
        )
        stores.append(store)
        return store

    yield _make
    for store in stores:
        store.close()


@pytest.fixture
def seeded_store(store_factory) -> ScriptureStore:
    """A store whose asset is missing, so it holds only the fallback seed."""
    store = store_factory()
    assert store.ensure_ready()
    return store


@pytest.fixture
def full_store(store_factory, niv_asset) -> ScriptureStore:
    store = store_factory(niv_asset)
    assert store.ensure_ready()
    return store
