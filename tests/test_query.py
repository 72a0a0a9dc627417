import datetime as dt
import random

import pytest

from kjvstore.canon import book_name, resolve_book_id
from kjvstore.devotional import EmergencyCategory
from kjvstore.query import QueryEngine, placeholder_verse
from kjvstore.seed import ESSENTIAL_VERSES


class LastChoice(random.Random):
    """Deterministic rng: choice() always takes the last element."""

    def choice(self, seq):
        return seq[-1]


@pytest.fixture
def engine(seeded_store):
    return QueryEngine(seeded_store, rng=random.Random(7))


@pytest.fixture
def full_engine(full_store):
    return QueryEngine(full_store, rng=random.Random(7))


# ---------- exact lookups ----------


def test_get_verse(engine):
    s = engine.get_verse("John", 3, 16)
    assert s.book_name == "John"
    assert s.reference == "John 3:16"
    assert s.text.startswith("For God so loved the world")
    assert not s.is_placeholder


def test_get_verse_resolves_aliases(engine):
    s = engine.get_verse("1 Corinthians", 10, 13)
    assert s.book_name == "I Corinthians"
    assert "temptation" in s.text

    assert engine.get_verse("psalm", 23, 1).book_name == "Psalms"


def test_get_verse_miss_returns_placeholder(engine):
    s = engine.get_verse("Genesis", 50, 26)
    assert s.is_placeholder
    assert s.book_name == "Genesis"
    assert (s.chapter, s.verse) == (50, 26)
    assert s.text == (
        "This verse (Genesis 50:26) is not available in the current database. "
        "The full KJV Bible contains this verse."
    )


def test_placeholder_echoes_unknown_book(engine):
    s = engine.get_verse("Hezekiah", 1, 1)
    assert s == placeholder_verse("Hezekiah", 1, 1)


def test_get_chapter_is_ordered(engine):
    verses = engine.get_chapter("Psalms", 23)
    assert [v.verse for v in verses] == [1, 2, 3, 4, 5, 6]
    assert verses[0].text == "The LORD is my shepherd; I shall not want."


def test_get_chapter_miss_returns_placeholders(engine):
    verses = engine.get_chapter("Genesis", 2)
    assert len(verses) == 25
    assert all(v.is_placeholder for v in verses)
    assert [v.verse for v in verses] == list(range(1, 26))

    assert len(engine.get_chapter("Nowhere", 3)) == 30


def test_get_verses_by_id(engine):
    assert [v.verse for v in engine.get_verses(1, 1)] == [1, 2, 3, 4, 5]
    assert len(engine.get_verses(43, 3, 16)) == 1
    assert engine.get_verses(43, 99, 1) == []


def test_get_scripture_by_reference(engine):
    assert engine.get_scripture_by_reference("Romans 8:28").text.startswith("And we know")
    assert engine.get_scripture_by_reference("not a reference") is None


# ---------- browsing ----------


def test_random_verse_is_stored(engine):
    for _ in range(10):
        s = engine.get_random_verse()
        assert s is not None and not s.is_placeholder


def test_search_is_case_insensitive_and_ordered(engine):
    results = engine.search("SHEPHERD")
    assert [r.reference for r in results] == ["Psalms 23:1"]

    lord = engine.search("the lord")
    assert len(lord) > 3
    assert lord[0].reference == "Psalms 23:1"


def test_search_limit(engine):
    assert len(engine.search("the", limit=3)) == 3
    assert engine.search("the", limit=0) == []


def test_search_short_query(engine):
    assert engine.search("a") == []
    assert engine.search("  ") == []


def test_search_treats_wildcards_literally(engine):
    assert engine.search("%%") == []
    assert engine.search("__") == []


def test_search_falls_back_to_reference(engine):
    results = engine.search("John 3:16")
    assert len(results) == 1
    assert results[0].reference == "John 3:16"

    assert engine.search("John 3:17") == []


def test_search_full_store_order(full_engine):
    results = full_engine.search("synthetic verse 1", limit=50)
    keys = [(resolve_book_id(r.book_name), r.chapter, r.verse) for r in results]
    assert len(keys) == 50
    assert keys == sorted(keys)


def test_every_seeded_verse_reads_back(engine):
    for book_id, chapter, verse, text in ESSENTIAL_VERSES:
        s = engine.get_verse(book_name(book_id), chapter, verse)
        assert not s.is_placeholder, s.reference
        assert s.text == text


def test_imported_store_serves_imported_text(full_engine):
    s = full_engine.get_verse("John", 3, 16)
    assert not s.is_placeholder
    assert s.text.startswith("For God so loved the world")

    books = full_engine.get_all_books()
    assert [b.id for b in books] == list(range(1, 67))


def test_numbers_too_large_for_sqlite_degrade(engine):
    huge = 2 ** 63

    s = engine.get_verse("John", huge, 1)
    assert s.is_placeholder
    assert s.book_name == "John"

    assert engine.search("love", limit=huge) == []
    assert engine.get_verses(43, huge) == []
    assert engine.get_verses(43, 3, huge) == []
    assert all(v.is_placeholder for v in engine.get_chapter("John", huge))


# ---------- catalog ----------


def test_get_all_books(engine):
    books = engine.get_all_books()
    assert len(books) == 66
    assert books[8].name == "I Samuel"


def test_get_all_books_fills_gaps(seeded_store, monkeypatch):
    engine = QueryEngine(seeded_store)
    with seeded_store.write() as conn:
        with conn:
            conn.execute("DELETE FROM books WHERE id > 10")
    monkeypatch.setattr(seeded_store, "repopulate_once", lambda: False)

    books = engine.get_all_books()

    assert len(books) == 66
    assert books[65].name == "Revelation"


def test_chapter_count_uses_static_table_for_thin_store(engine, seeded_store):
    assert engine.get_chapter_count(1) == 50
    assert engine.get_chapter_count(19) == 150
    assert not seeded_store.repopulate_once()  # already used


def test_chapter_count_from_full_store(full_engine):
    # synthetic corpus spreads verses over 10 chapters per book
    assert full_engine.get_chapter_count(1) == 10


# ---------- curated ----------


def test_daily_scripture_rotates_by_day_of_year(engine):
    jan1 = engine.get_daily_scripture(dt.date(2024, 1, 1))
    assert jan1.reference == "Psalms 118:24"

    jan7 = engine.get_daily_scripture(dt.date(2024, 1, 7))
    assert jan7.reference == "Philippians 4:13"


def test_daily_scripture_is_cached_per_date(engine):
    day = dt.date(2024, 3, 1)
    assert engine.get_daily_scripture(day) is engine.get_daily_scripture(day)


def test_daily_cache_keeps_only_the_latest_day(engine):
    first = dt.date(2024, 3, 1)
    second = dt.date(2024, 3, 2)
    earlier = engine.get_daily_scripture(first)
    latest = engine.get_daily_scripture(second)

    assert engine._daily_cache == (second, latest)
    again = engine.get_daily_scripture(first)
    assert again == earlier
    assert again is not earlier


def test_emergency_scripture_from_category(engine):
    s = engine.get_emergency_scripture(EmergencyCategory.COMFORT)
    assert s is not None and not s.is_placeholder


def test_emergency_falls_back_to_keyword_search(seeded_store):
    engine = QueryEngine(seeded_store, rng=LastChoice())

    # Matthew 26:41 is not seeded; the keyword search finds I Corinthians 10:13.
    s = engine.get_emergency_scripture("temptation")

    assert s.reference == "I Corinthians 10:13"


def test_emergency_falls_back_to_random_verse(seeded_store):
    engine = QueryEngine(seeded_store, rng=LastChoice())

    # Matthew 6:34 is not seeded and no verse mentions "anxiety".
    s = engine.get_emergency_scripture("anxiety")

    assert s is not None and not s.is_placeholder


def test_unknown_emergency_category_defaults_to_temptation(engine):
    s = engine.get_emergency_scripture("boredom")
    assert s is not None and not s.is_placeholder


# ---------- not ready ----------


def test_store_that_cannot_repair_returns_nothing(store_factory, niv_asset):
    store = store_factory(niv_asset, auto_repair=False)
    engine = QueryEngine(store)

    assert engine.get_verse("John", 3, 16) is None
    assert engine.get_chapter("John", 3) == []
    assert engine.search("love") == []
    assert engine.get_random_verse() is None
    assert len(engine.get_all_books()) == 66
    assert engine.get_chapter_count(43) == 21
