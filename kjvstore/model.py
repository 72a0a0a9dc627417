"""
Data model definitions for the scripture store.

- Book          : a row of the canonical `books` table
- Verse         : a row of the canonical `verses` table
- Scripture     : the denormalized (book name + verse) shape every read returns
- VerseRef      : a parsed reference such as "John 3:16"
- DetectedSchema: where the books/verses relations live in a source file
- ImportResult  : outcome of one import attempt
- ImportProgress: live counters for an import in flight
- HealthReport  : integrity check details
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Book:
    id: int
    name: str


@dataclass(frozen=True)
class Verse:
    """
    Representation of a verse row as stored in the `verses` table.
    """
    id: int
    book_id: int
    chapter: int
    verse: int
    text: str


@dataclass(frozen=True)
class Scripture:
    """
    A verse as the UI sees it.

    is_placeholder marks a synthesized verse returned when the requested
    reference is not in the store.
    """
    book_name: str
    chapter: int
    verse: int
    text: str
    is_placeholder: bool = False

    @property
    def reference(self) -> str:
        return f"{self.book_name} {self.chapter}:{self.verse}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VerseRef:
    """
    A reference to a single verse by book string (name or alias).
    """
    book: str
    chapter: int
    verse: int

    def __str__(self) -> str:
        return f"{self.book} {self.chapter}:{self.verse}"


@dataclass(frozen=True)
class DetectedSchema:
    """
    Location of the two canonical relations inside an arbitrary source file.

    Either table may be None; `found` is True only when both are known.
    """
    books_table: Optional[str] = None
    verses_table: Optional[str] = None
    translation_tag: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.books_table is not None and self.verses_table is not None

    @classmethod
    def empty(cls) -> "DetectedSchema":
        return cls()


@dataclass
class ImportProgress:
    verses_total: int = 0
    verses_imported: int = 0
    batches_committed: int = 0

    @property
    def percent(self) -> int:
        if self.verses_total <= 0:
            return 0
        return min(100, round(self.verses_imported * 100 / self.verses_total))


@dataclass
class ImportResult:
    """
    Outcome of one import attempt.

    degraded: the store holds Fallback Seeder data rather than source data.
    partial : the verse copy stopped early; committed batches were kept.
    """
    books_imported: int = 0
    verses_imported: int = 0
    degraded: bool = False
    partial: bool = False
    cancelled: bool = False
    skipped_rows: int = 0
    translation_tag: Optional[str] = None
    error: Optional[str] = None


@dataclass
class HealthReport:
    tables_present: List[str] = field(default_factory=list)
    book_count: int = 0
    verse_count: int = 0
    healthy: bool = False
    message: str = ""
