"""
Curated reference lists: the daily rotation and the emergency categories.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, Tuple

from .model import VerseRef
from .util import warn

DAILY_REFERENCES: Tuple[VerseRef, ...] = (
    VerseRef("Philippians", 4, 13),
    VerseRef("Psalms", 118, 24),
    VerseRef("Isaiah", 40, 31),
    VerseRef("Romans", 8, 28),
    VerseRef("John", 3, 16),
    VerseRef("Jeremiah", 29, 11),
    VerseRef("Proverbs", 3, 5),
)


class EmergencyCategory(str, Enum):
    TEMPTATION = "temptation"
    ANXIETY = "anxiety"
    DEPRESSION = "depression"
    GUIDANCE = "guidance"
    COMFORT = "comfort"

    @classmethod
    def parse(cls, value: "str | EmergencyCategory") -> "EmergencyCategory":
        """Case-insensitive lookup; unknown values fall back to TEMPTATION."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            warn(f"Unknown emergency category {value!r}; using {cls.TEMPTATION.value!r}.")
            return cls.TEMPTATION


EMERGENCY_REFERENCES: Dict[EmergencyCategory, Tuple[VerseRef, ...]] = {
    EmergencyCategory.TEMPTATION: (
        VerseRef("I Corinthians", 10, 13),
        VerseRef("James", 4, 7),
        VerseRef("Matthew", 26, 41),
    ),
    EmergencyCategory.ANXIETY: (
        VerseRef("Philippians", 4, 6),
        VerseRef("I Peter", 5, 7),
        VerseRef("Matthew", 6, 34),
    ),
    EmergencyCategory.DEPRESSION: (
        VerseRef("Psalms", 34, 17),
        VerseRef("Isaiah", 41, 10),
        VerseRef("Psalms", 3, 3),
    ),
    EmergencyCategory.GUIDANCE: (
        VerseRef("Proverbs", 3, 5),
        VerseRef("Psalms", 32, 8),
        VerseRef("James", 1, 5),
    ),
    EmergencyCategory.COMFORT: (
        VerseRef("Psalms", 23, 4),
        VerseRef("Matthew", 11, 28),
        VerseRef("II Corinthians", 1, 3),
    ),
}


def daily_reference_for(day: dt.date) -> VerseRef:
    """The reference shown on `day`: the list rotates by day of year."""
    return DAILY_REFERENCES[day.timetuple().tm_yday % len(DAILY_REFERENCES)]


def emergency_references(category: "str | EmergencyCategory") -> Tuple[VerseRef, ...]:
    return EMERGENCY_REFERENCES[EmergencyCategory.parse(category)]
