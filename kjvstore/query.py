"""
Read API over a ScriptureStore.

Every lookup first makes sure the store is READY (repairing it if needed),
then reads through the store's shared connection. Reads never raise
sqlite3.Error or OverflowError: database problems and out-of-range numbers
are reported with warn() and degrade to placeholder verses or the static
canon tables.

- get_verse / get_chapter / get_verses     exact lookups
- get_random_verse / search                browsing
- get_all_books / get_chapter_count        catalog, with static fallback
- get_daily_scripture / get_emergency_scripture
- get_scripture_by_reference("John 3:16")
"""

from __future__ import annotations

import datetime as dt
import random
import sqlite3
import threading
from typing import List, Optional, Tuple

from . import canon
from .config import DEFAULT_SEARCH_LIMIT, MIN_BOOK_COUNT, MIN_SEARCH_LENGTH
from .devotional import EMERGENCY_REFERENCES, EmergencyCategory, daily_reference_for
from .errors import StoreUnopenable
from .model import Book, Scripture
from .store import ScriptureStore
from .util import info, warn

PLACEHOLDER_TEMPLATE = (
    "This verse ({book} {chapter}:{verse}) is not available in the current database. "
    "The full KJV Bible contains this verse."
)

EMERGENCY_SEARCH_LIMIT = 10

_SELECT_VERSES = """
    SELECT v.book_id, b.name, v.chapter, v.verse, v.text
    FROM verses v
    LEFT JOIN books b ON b.id = v.book_id
"""

# (book_id, book_name, chapter, verse, text)
ScriptureRow = Tuple[int, Optional[str], int, int, str]

# numbers too large for an SQLite INTEGER surface as OverflowError
_READ_ERRORS = (sqlite3.Error, StoreUnopenable, OverflowError)


def placeholder_verse(book: str, chapter: int, verse: int) -> Scripture:
    """A clearly-labeled stand-in for a verse the store does not hold."""
    return Scripture(
        book_name=book,
        chapter=chapter,
        verse=verse,
        text=PLACEHOLDER_TEMPLATE.format(book=book, chapter=chapter, verse=verse),
        is_placeholder=True,
    )


def _to_scripture(row: ScriptureRow) -> Scripture:
    book_id, name, chapter, verse, text = row
    return Scripture(
        book_name=name or canon.book_name(book_id) or f"Book {book_id}",
        chapter=chapter,
        verse=verse,
        text=text,
    )


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class QueryEngine:
    def __init__(self, store: ScriptureStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()
        # (date, verse) for the most recent day only
        self._daily_cache: Optional[Tuple[dt.date, Scripture]] = None
        self._daily_lock = threading.Lock()

    # ---------- helpers ----------

    def _ready(self) -> bool:
        if self.store.ensure_ready():
            return True
        warn(f"Store is not ready ({self.store.status.value}): {self.store.diagnostic}")
        return False

    @staticmethod
    def _resolve_book(conn: sqlite3.Connection, book: str) -> Optional[int]:
        """Book id from the store's own catalog first, then the canon aliases."""
        row = conn.execute(
            "SELECT id FROM books WHERE LOWER(name) = LOWER(?) LIMIT 1;",
            (book.strip(),),
        ).fetchone()
        if row is not None:
            return int(row[0])
        return canon.resolve_book_id(book)

    @staticmethod
    def _fetch_verse(
        conn: sqlite3.Connection, book_id: int, chapter: int, verse: int
    ) -> Optional[Scripture]:
        row = conn.execute(
            _SELECT_VERSES + " WHERE v.book_id = ? AND v.chapter = ? AND v.verse = ?;",
            (book_id, chapter, verse),
        ).fetchone()
        return _to_scripture(row) if row is not None else None

    @staticmethod
    def _fetch_chapter(conn: sqlite3.Connection, book_id: int, chapter: int) -> List[Scripture]:
        rows = conn.execute(
            _SELECT_VERSES + " WHERE v.book_id = ? AND v.chapter = ? ORDER BY v.verse;",
            (book_id, chapter),
        ).fetchall()
        return [_to_scripture(r) for r in rows]

    # ---------- exact lookups ----------

    def get_verse(self, book: str, chapter: int, verse: int) -> Optional[Scripture]:
        """
        Look up one verse by book name (or alias), chapter and verse.

        Returns None only when the store cannot be made READY; a reference the
        store does not hold yields a placeholder verse.
        """
        if not self._ready():
            return None
        try:
            with self.store.read() as conn:
                book_id = self._resolve_book(conn, book)
                if book_id is not None:
                    found = self._fetch_verse(conn, book_id, chapter, verse)
                    if found is not None:
                        return found
        except _READ_ERRORS as e:
            warn(f"Database error during verse lookup: {e}")
        return placeholder_verse(book, chapter, verse)

    def get_chapter(self, book: str, chapter: int) -> List[Scripture]:
        """
        All verses of a chapter ordered by verse number.

        When the store holds none, returns one placeholder per verse of the
        chapter's standard length.
        """
        if not self._ready():
            return []
        book_id: Optional[int] = None
        try:
            with self.store.read() as conn:
                book_id = self._resolve_book(conn, book)
                if book_id is not None:
                    verses = self._fetch_chapter(conn, book_id, chapter)
                    if verses:
                        return verses
        except _READ_ERRORS as e:
            warn(f"Database error during chapter lookup: {e}")

        count = canon.standard_verse_count(book_id, chapter)
        info(f"{book} {chapter} not in store; returning {count} placeholder verse(s).")
        return [placeholder_verse(book, chapter, v) for v in range(1, count + 1)]

    def get_verses(self, book_id: int, chapter: int, verse: Optional[int] = None) -> List[Scripture]:
        """
        Id-based lookup: a whole chapter, or a single verse when `verse` is given.

        Returns only stored verses ([] on a miss).
        """
        if not self._ready():
            return []
        try:
            with self.store.read() as conn:
                if verse is None:
                    return self._fetch_chapter(conn, book_id, chapter)
                found = self._fetch_verse(conn, book_id, chapter, verse)
                return [found] if found is not None else []
        except _READ_ERRORS as e:
            warn(f"Database error during verse lookup: {e}")
            return []

    def get_scripture_by_reference(self, reference: str) -> Optional[Scripture]:
        """Look up a verse by a reference string such as 'John 3:16'."""
        ref = canon.parse_reference(reference)
        if ref is None:
            return None
        return self.get_verse(ref.book, ref.chapter, ref.verse)

    # ---------- browsing ----------

    def get_random_verse(self) -> Optional[Scripture]:
        if not self._ready():
            return None
        try:
            with self.store.read() as conn:
                (count,) = conn.execute("SELECT COUNT(*) FROM verses;").fetchone()
                if not count:
                    warn("Store holds no verses.")
                    return None
                offset = self.rng.randrange(count)
                row = conn.execute(
                    _SELECT_VERSES + " ORDER BY v.id LIMIT 1 OFFSET ?;",
                    (offset,),
                ).fetchone()
        except _READ_ERRORS as e:
            warn(f"Database error during random pick: {e}")
            return None
        return _to_scripture(row) if row is not None else None

    def search(self, text: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[Scripture]:
        """
        Case-insensitive substring search, ordered by book, chapter, verse.

        Queries shorter than MIN_SEARCH_LENGTH return []. When nothing matches
        and the query reads like a reference ("John 3:16"), the stored verse
        at that reference is returned instead.
        """
        query = (text or "").strip()
        if len(query) < MIN_SEARCH_LENGTH or limit <= 0:
            return []
        if not self._ready():
            return []

        try:
            with self.store.read() as conn:
                rows = conn.execute(
                    _SELECT_VERSES
                    + " WHERE LOWER(v.text) LIKE ? ESCAPE '\\'"
                    + " ORDER BY v.book_id, v.chapter, v.verse LIMIT ?;",
                    (f"%{_escape_like(query.lower())}%", limit),
                ).fetchall()
                results = [_to_scripture(r) for r in rows]

                if not results and canon.looks_like_reference(query):
                    ref = canon.parse_reference(query)
                    book_id = self._resolve_book(conn, ref.book) if ref else None
                    if ref is not None and book_id is not None:
                        found = self._fetch_verse(conn, book_id, ref.chapter, ref.verse)
                        if found is not None:
                            results = [found]
        except _READ_ERRORS as e:
            warn(f"Database error during search: {e}")
            return []

        info(f"Search {query!r} returned {len(results)} verse(s).")
        return results

    # ---------- catalog ----------

    def _stored_books(self) -> List[Book]:
        try:
            with self.store.read() as conn:
                rows = conn.execute("SELECT id, name FROM books ORDER BY id;").fetchall()
        except _READ_ERRORS as e:
            warn(f"Database error while listing books: {e}")
            return []
        return [Book(id=int(i), name=n) for i, n in rows]

    def get_all_books(self) -> List[Book]:
        """
        The book catalog in canonical order, always 66 entries.

        An incomplete stored catalog triggers one repopulation; any gaps left
        are filled from the static catalog.
        """
        books: List[Book] = []
        if self._ready():
            books = self._stored_books()
            if len(books) < MIN_BOOK_COUNT and self.store.repopulate_once():
                books = self._stored_books()

        merged = {b.id: b for b in canon.all_books()}
        for b in books:
            if b.id in merged:
                merged[b.id] = b
        return [merged[k] for k in sorted(merged)]

    def _stored_chapter_count(self, book_id: int) -> Optional[int]:
        try:
            with self.store.read() as conn:
                (count,) = conn.execute(
                    "SELECT MAX(chapter) FROM verses WHERE book_id = ?;", (book_id,)
                ).fetchone()
        except _READ_ERRORS as e:
            warn(f"Database error while counting chapters: {e}")
            return None
        return int(count) if count is not None else None

    def get_chapter_count(self, book_id: int) -> int:
        """
        Number of chapters in a book.

        A thin store cannot be trusted for this, so it is repopulated once and
        the static count is used when the store still falls short.
        """
        static = canon.standard_chapter_count(book_id)
        if not self._ready():
            return static

        count = self._stored_chapter_count(book_id)
        if count is not None and not self.store.is_thin():
            return count

        if self.store.repopulate_once():
            count = self._stored_chapter_count(book_id)
            if count is not None and not self.store.is_thin():
                return count
        return max(count or 0, static)

    # ---------- curated ----------

    def get_daily_scripture(self, today: Optional[dt.date] = None) -> Optional[Scripture]:
        """The verse of the day; the same date always yields the same verse."""
        today = today or dt.date.today()
        with self._daily_lock:
            cached = self._daily_cache
        if cached is not None and cached[0] == today:
            return cached[1]

        ref = daily_reference_for(today)
        scripture = self.get_verse(ref.book, ref.chapter, ref.verse)
        if scripture is not None and not scripture.is_placeholder:
            with self._daily_lock:
                self._daily_cache = (today, scripture)
        return scripture

    def get_emergency_scripture(self, category: "str | EmergencyCategory") -> Optional[Scripture]:
        """
        A random verse from the category's curated list.

        If that verse is missing, fall back to a keyword search for the
        category name, then to any random verse.
        """
        cat = EmergencyCategory.parse(category)
        ref = self.rng.choice(EMERGENCY_REFERENCES[cat])
        scripture = self.get_verse(ref.book, ref.chapter, ref.verse)
        if scripture is not None and not scripture.is_placeholder:
            return scripture

        matches = self.search(cat.value, EMERGENCY_SEARCH_LIMIT)
        if matches:
            return self.rng.choice(matches)
        return self.get_random_verse()
