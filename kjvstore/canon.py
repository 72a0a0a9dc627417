"""
Static canon tables for the 66-book Protestant canon.

This module holds:
- BOOKS: the canonical id -> name catalog. User-facing book ordering depends
  on it, so the names and ids must never change.
- STANDARD_CHAPTER_COUNTS: chapters per book.
- standard_verse_count(): a best-effort verse count per chapter, used only to
  size placeholder output.
- Book-name resolution ("1 Corinthians", "1cor", "Psalm" -> book id) and a
  small reference parser ("John 3:16").
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from .model import Book, VerseRef
from .util import warn


BOOKS: Tuple[Tuple[int, str], ...] = (
    (1, "Genesis"),
    (2, "Exodus"),
    (3, "Leviticus"),
    (4, "Numbers"),
    (5, "Deuteronomy"),
    (6, "Joshua"),
    (7, "Judges"),
    (8, "Ruth"),
    (9, "I Samuel"),
    (10, "II Samuel"),
    (11, "I Kings"),
    (12, "II Kings"),
    (13, "I Chronicles"),
    (14, "II Chronicles"),
    (15, "Ezra"),
    (16, "Nehemiah"),
    (17, "Esther"),
    (18, "Job"),
    (19, "Psalms"),
    (20, "Proverbs"),
    (21, "Ecclesiastes"),
    (22, "Song of Solomon"),
    (23, "Isaiah"),
    (24, "Jeremiah"),
    (25, "Lamentations"),
    (26, "Ezekiel"),
    (27, "Daniel"),
    (28, "Hosea"),
    (29, "Joel"),
    (30, "Amos"),
    (31, "Obadiah"),
    (32, "Jonah"),
    (33, "Micah"),
    (34, "Nahum"),
    (35, "Habakkuk"),
    (36, "Zephaniah"),
    (37, "Haggai"),
    (38, "Zechariah"),
    (39, "Malachi"),
    (40, "Matthew"),
    (41, "Mark"),
    (42, "Luke"),
    (43, "John"),
    (44, "Acts"),
    (45, "Romans"),
    (46, "I Corinthians"),
    (47, "II Corinthians"),
    (48, "Galatians"),
    (49, "Ephesians"),
    (50, "Philippians"),
    (51, "Colossians"),
    (52, "I Thessalonians"),
    (53, "II Thessalonians"),
    (54, "I Timothy"),
    (55, "II Timothy"),
    (56, "Titus"),
    (57, "Philemon"),
    (58, "Hebrews"),
    (59, "James"),
    (60, "I Peter"),
    (61, "II Peter"),
    (62, "I John"),
    (63, "II John"),
    (64, "III John"),
    (65, "Jude"),
    (66, "Revelation"),
)

BOOK_NAMES: Dict[int, str] = dict(BOOKS)

STANDARD_CHAPTER_COUNTS: Dict[int, int] = {
    1: 50, 2: 40, 3: 27, 4: 36, 5: 34, 6: 24, 7: 21, 8: 4, 9: 31, 10: 24,
    11: 22, 12: 25, 13: 29, 14: 36, 15: 10, 16: 13, 17: 10, 18: 42, 19: 150,
    20: 31, 21: 12, 22: 8, 23: 66, 24: 52, 25: 5, 26: 48, 27: 12, 28: 14,
    29: 3, 30: 9, 31: 1, 32: 4, 33: 7, 34: 3, 35: 3, 36: 3, 37: 2, 38: 14,
    39: 4, 40: 28, 41: 16, 42: 24, 43: 21, 44: 28, 45: 16, 46: 16, 47: 13,
    48: 6, 49: 6, 50: 4, 51: 4, 52: 5, 53: 3, 54: 6, 55: 4, 56: 3, 57: 1,
    58: 13, 59: 5, 60: 5, 61: 3, 62: 5, 63: 1, 64: 1, 65: 1, 66: 22,
}

# Known chapter lengths, keyed by (book_id, chapter). Approximate elsewhere.
_SPECIAL_VERSE_COUNTS: Dict[Tuple[int, int], int] = {
    (1, 1): 31,
    (1, 2): 25,
    (19, 23): 6,
    (19, 117): 2,
    (19, 119): 176,
    (43, 3): 36,
    (66, 22): 21,
}

_BOOK_DEFAULT_VERSE_COUNTS: Dict[int, int] = {
    19: 25,  # Psalms
    20: 22,  # Proverbs
    23: 22,  # Isaiah
    66: 20,  # Revelation
}

DEFAULT_VERSE_COUNT = 30

# Extra spellings that the numeral expansion below does not produce.
_EXTRA_ALIASES: Dict[str, int] = {
    "psalm": 19,
    "song of songs": 22,
    "canticles": 22,
    "revelations": 66,
    "revelation of john": 66,
}

_NUMERALS = {"I": ("1", "first"), "II": ("2", "second"), "III": ("3", "third")}


def all_books() -> List[Book]:
    """Return the static 66-book catalog in canonical order."""
    return [Book(id=book_id, name=name) for book_id, name in BOOKS]


def book_name(book_id: int) -> Optional[str]:
    return BOOK_NAMES.get(book_id)


def standard_chapter_count(book_id: int) -> int:
    return STANDARD_CHAPTER_COUNTS.get(book_id, 1)


def standard_verse_count(book_id: Optional[int], chapter: int) -> int:
    """
    Plausible number of verses in a chapter, for placeholder output only.

    Exact for a handful of well-known chapters; otherwise a per-book default
    or DEFAULT_VERSE_COUNT.
    """
    if book_id is None:
        return DEFAULT_VERSE_COUNT
    special = _SPECIAL_VERSE_COUNTS.get((book_id, chapter))
    if special:
        return special
    return _BOOK_DEFAULT_VERSE_COUNTS.get(book_id, DEFAULT_VERSE_COUNT)


def _normalize(name: str) -> str:
    return re.sub(r"\s+", " ", name.strip().lower().replace(".", ""))


def _build_book_lookup() -> Dict[str, int]:
    """
    Build a mapping from various book strings to book id.

    Keys include:
    - canonical name (I Corinthians)
    - arabic / ordinal numerals (1 Corinthians, 1corinthians, first corinthians)
    - a handful of common alternates (Psalm, Song of Songs)
    All keys are lowercase.
    """
    lookup: Dict[str, int] = {}
    for book_id, name in BOOKS:
        lookup[_normalize(name)] = book_id
        prefix, _, rest = name.partition(" ")
        if prefix in _NUMERALS and rest:
            for alt in _NUMERALS[prefix]:
                lookup[_normalize(f"{alt} {rest}")] = book_id
                lookup[_normalize(f"{alt}{rest}")] = book_id
    lookup.update(_EXTRA_ALIASES)
    return lookup


_BOOK_LOOKUP = _build_book_lookup()


def resolve_book_id(book: str) -> Optional[int]:
    """
    Resolve a book string to its canonical id, or None if unknown.
    """
    if not book:
        return None
    return _BOOK_LOOKUP.get(_normalize(book))


_REFERENCE_RE = re.compile(r"^\s*(?P<book>.+?)\s+(?P<chapter>\d+)\s*:\s*(?P<verse>\d+)\s*$")


def looks_like_reference(text: str) -> bool:
    return bool(_REFERENCE_RE.match(text or ""))


def parse_reference(ref: str) -> Optional[VerseRef]:
    """
    Parse a reference string like 'John 3:16' or '1 Corinthians 10:13'.

    Returns None (with a warning) when the string is not a single-verse reference.
    """
    match = _REFERENCE_RE.match(ref or "")
    if match is None:
        warn(f"Could not parse reference: {ref!r}")
        return None
    return VerseRef(
        book=match.group("book").strip(),
        chapter=int(match.group("chapter")),
        verse=int(match.group("verse")),
    )
