"""Zone key normalization.

Zone keys follow ``<Letter><Number>[_<Quadrant>[_<SubQuadrant>]]``, e.g. ``W1``,
``W1_NE`` or ``W1_NE_TL``. Input is case-insensitive and may carry leading
zeros (``w01_ne``); the canonical form is uppercase without leading zeros.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from ..models.domain import ZoneTier

QUADRANTS = ("NE", "NW", "SE", "SW")
SUBQUADRANTS = ("TL", "TR", "LL", "LR")

KEY_DELIMITERS = re.compile(r"[;,/|]")

_LEADING_RE = re.compile(r"^([A-Z])(\d+)(_.*)?$")
_BASE_RE = re.compile(r"^([A-Z])(\d+)")
_SUFFIX_RE = re.compile(r"_(NE|NW|SE|SW)(?:_(TL|TR|LL|LR))?$")
_KEY_SHAPE_RE = re.compile(
    r"^[A-Z]\d+(?:_(?:NE|NW|SE|SW)(?:_(?:TL|TR|LL|LR))?)?$",
    re.IGNORECASE,
)


def normalize(raw: object) -> str:
    """Return the canonical form of a zone key; never raises."""

    text = str(raw if raw is not None else "").strip().upper()
    match = _LEADING_RE.match(text)
    if not match:
        return text
    letter, digits, suffix = match.groups()
    return f"{letter}{int(digits)}{suffix or ''}"


def base_key_from(key: str) -> str:
    normalized = normalize(key)
    match = _BASE_RE.match(normalized)
    if match:
        return f"{match.group(1)}{int(match.group(2))}"
    return normalized.split("_", 1)[0]


def quadrant_and_sub_parts(key: str) -> tuple[Optional[str], Optional[str]]:
    """Extract ``(quadrant, subquadrant)`` from the key suffix; missing parts are None."""

    match = _SUFFIX_RE.search(normalize(key))
    if not match:
        return None, None
    return match.group(1), match.group(2)


def is_quadrant_key(key: str) -> bool:
    quadrant, sub = quadrant_and_sub_parts(key)
    return quadrant is not None and sub is None


def is_sub_quadrant_key(key: str) -> bool:
    _, sub = quadrant_and_sub_parts(key)
    return sub is not None


def base_plus_quadrant(key: str) -> str:
    """``W1_NE_TL`` -> ``W1_NE``; keys without a quadrant reduce to the base key."""

    base = base_key_from(key)
    quadrant, _ = quadrant_and_sub_parts(key)
    return f"{base}_{quadrant}" if quadrant else base


def tier_of(key: str) -> ZoneTier:
    if is_sub_quadrant_key(key):
        return ZoneTier.SUBQUADRANT
    if is_quadrant_key(key):
        return ZoneTier.QUADRANT
    return ZoneTier.BASE


def looks_like_zone_key(text: str) -> bool:
    return bool(_KEY_SHAPE_RE.match(text.strip()))


def split_keys(cell: str, delimiter: Optional[str] = None) -> list[str]:
    """Split a keys cell on ``; , / |`` (or one explicit delimiter) into raw tokens."""

    if not cell:
        return []
    parts = cell.split(delimiter) if delimiter else KEY_DELIMITERS.split(cell)
    return [part.strip() for part in parts if part.strip()]


def unique_normalized(keys: Iterable[str]) -> list[str]:
    """Normalize keys, collapsing duplicates to their first occurrence."""

    seen: set[str] = set()
    ordered: list[str] = []
    for raw in keys:
        key = normalize(raw)
        if not key or key in seen:
            continue
        seen.add(key)
        ordered.append(key)
    return ordered
