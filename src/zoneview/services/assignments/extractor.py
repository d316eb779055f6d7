"""Driver-to-zone assignment extraction from loosely structured sheets.

This is a best-effort heuristic, not a parser with guarantees. Assignment
sheets are hand-edited and rarely share a layout, so extraction runs two
strategies in order:

1. Header strategy: within the first 50 rows, find a row with a driver-like
   column (driver / assigned / name) and a keys-like column (key / zone /
   route). Every later row maps each key in its keys cell to its driver.
2. Fallback strategy: within the first 40 rows, the first name-like cell of a
   row is the driver and every zone-key-shaped token anywhere in the row is
   one of its keys.

Nothing here raises on unexpected input; no match yields an empty mapping.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Literal, Mapping, Optional, Sequence

from ..keys import looks_like_zone_key, normalize, split_keys

logger = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 50
FALLBACK_SCAN_ROWS = 40

WEEKDAY_TOKENS = frozenset(
    {
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
        "mon", "tue", "tues", "wed", "thu", "thur", "thurs", "fri", "sat", "sun",
    }
)
HEADER_TOKENS = frozenset({"driver", "drivers", "name", "names", "assigned", "zone", "zones", "key", "keys", "route", "routes", "day"})

_WORDS = re.compile(r"[a-z]+")
_NAME_CHARS = re.compile(r"^(?:[^\W\d_]|['\- ])+$")


@dataclass(frozen=True, slots=True)
class HeaderRule:
    """Matches a header cell containing ``term`` (singular or plural) as a word."""

    role: Literal["driver", "keys"]
    term: str
    exclude: tuple[str, ...] = ()

    def matches(self, cell: str) -> bool:
        words = _WORDS.findall((cell or "").lower())
        if any(word in self.exclude for word in words):
            return False
        return any(word in (self.term, f"{self.term}s") for word in words)


KEYS_RULES: tuple[HeaderRule, ...] = (
    HeaderRule("keys", "key", exclude=("driver",)),
    HeaderRule("keys", "zone", exclude=("driver",)),
    HeaderRule("keys", "route", exclude=("driver",)),
)
DRIVER_RULES: tuple[HeaderRule, ...] = (
    HeaderRule("driver", "driver"),
    HeaderRule("driver", "assigned"),
    HeaderRule("driver", "name"),
)


@dataclass(frozen=True, slots=True)
class HeaderMatch:
    row: int
    driver_column: int
    keys_column: int


@dataclass(frozen=True, slots=True)
class AssignmentExtraction:
    mapping: dict[str, str] = field(default_factory=dict)
    strategy: Literal["header", "fallback", "none"] = "none"
    header: Optional[HeaderMatch] = None


class NameMatcher:
    """Decides whether a cell holds a driver name.

    With a roster, only roster names (case-insensitive) pass and the roster
    spelling is returned. Without one, a permissive letters-only pattern is
    used and weekday or header words are rejected.
    """

    def __init__(self, known_names: Iterable[str] = ()) -> None:
        self._known = {name.strip().casefold(): name.strip() for name in known_names if name and name.strip()}

    def __call__(self, cell: str) -> Optional[str]:
        text = (cell or "").strip()
        if not text:
            return None
        if self._known:
            return self._known.get(text.casefold())
        if not 2 <= len(text) <= 31:
            return None
        if not text[0].isalpha() or not _NAME_CHARS.match(text):
            return None
        lowered = text.lower()
        if lowered in WEEKDAY_TOKENS or all(word in HEADER_TOKENS for word in _WORDS.findall(lowered)):
            return None
        return text


def _first_matching_column(row: Sequence[str], rules: Sequence[HeaderRule], skip: Optional[int] = None) -> Optional[int]:
    for rule in rules:
        for index, cell in enumerate(row):
            if index != skip and rule.matches(cell):
                return index
    return None


def find_header(rows: Sequence[Sequence[str]]) -> Optional[HeaderMatch]:
    for row_index, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        keys_column = _first_matching_column(row, KEYS_RULES)
        if keys_column is None:
            continue
        driver_column = _first_matching_column(row, DRIVER_RULES, skip=keys_column)
        if driver_column is not None:
            return HeaderMatch(row=row_index, driver_column=driver_column, keys_column=keys_column)
    return None


def _extract_with_header(rows: Sequence[Sequence[str]], header: HeaderMatch, names: NameMatcher) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for row in rows[header.row + 1 :]:
        if header.driver_column >= len(row) or header.keys_column >= len(row):
            continue
        driver = names(row[header.driver_column])
        if not driver:
            continue
        for raw in split_keys(row[header.keys_column]):
            key = normalize(raw)
            if key:
                mapping[key] = driver
    return mapping


def _extract_fallback(rows: Sequence[Sequence[str]], names: NameMatcher) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for row in rows[:FALLBACK_SCAN_ROWS]:
        driver = next((name for name in (names(cell) for cell in row) if name), None)
        if not driver:
            continue
        for cell in row:
            for token in split_keys(cell or ""):
                if looks_like_zone_key(token):
                    mapping[normalize(token)] = driver
    return mapping


def extract_detailed(rows: Sequence[Sequence[str]], known_names: Iterable[str] = ()) -> AssignmentExtraction:
    names = NameMatcher(known_names)
    header = find_header(rows)
    if header is not None:
        mapping = _extract_with_header(rows, header, names)
        logger.debug("Assignment header at row %d produced %d keys", header.row, len(mapping))
        return AssignmentExtraction(mapping=mapping, strategy="header", header=header)

    mapping = _extract_fallback(rows, names)
    if mapping:
        logger.info("No assignment header found; row scan produced %d keys", len(mapping))
        return AssignmentExtraction(mapping=mapping, strategy="fallback")

    logger.warning("No driver assignments found in %d rows", len(rows))
    return AssignmentExtraction()


def extract(rows: Sequence[Sequence[str]], known_names: Iterable[str] = ()) -> dict[str, str]:
    return extract_detailed(rows, known_names).mapping


def merge_assignments(seed: Mapping[str, str], extracted: Mapping[str, str]) -> dict[str, str]:
    """Sheet entries override the seed mapping on key collision."""

    merged = {normalize(key): driver for key, driver in seed.items() if normalize(key) and driver}
    merged.update(extracted)
    return merged
