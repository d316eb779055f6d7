"""Build a SelectionSet from the rows of a selection sheet."""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from ..keys import normalize, split_keys
from .models import SelectionSet

logger = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 50
KEY_HEADER_ALIASES = frozenset(
    {
        "zonekeys",
        "zonekey",
        "keys",
        "routekeys",
        "routekey",
        "selectedkeys",
        "selectedkey",
    }
)

_NON_ALPHA = re.compile(r"[^a-z]")


def compact_header(cell: str) -> str:
    """Lowercase and drop spaces/punctuation: ``" Zone-Keys "`` -> ``"zonekeys"``."""

    return _NON_ALPHA.sub("", (cell or "").lower())


def _column_index(row: Sequence[str], wanted: Optional[str], aliases: frozenset[str] = frozenset()) -> Optional[int]:
    target = compact_header(wanted) if wanted else None
    for index, cell in enumerate(row):
        compact = compact_header(cell)
        if not compact:
            continue
        if target is not None and compact == target:
            return index
        if target is None and compact in aliases:
            return index
    return None


def find_keys_header(rows: Sequence[Sequence[str]], keys_column: Optional[str] = None) -> Optional[tuple[int, int]]:
    """Return ``(row_index, column_index)`` of the keys header, if any."""

    for row_index, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        column = _column_index(row, keys_column, KEY_HEADER_ALIASES)
        if column is not None:
            return row_index, column
    return None


def parse_selection_rows(
    rows: Sequence[Sequence[str]],
    *,
    keys_column: Optional[str] = None,
    day_column: Optional[str] = None,
    delimiter: Optional[str] = None,
    merge_days: bool = True,
) -> SelectionSet:
    """Collect the keys listed beneath the keys header, in first-seen order.

    Returns an empty SelectionSet when no header is found; the resolver then
    falls back to showing everything.
    """

    header = find_keys_header(rows, keys_column)
    if header is None:
        logger.warning("Selection sheet has no zone keys header; treating selection as empty")
        return SelectionSet()

    header_row, key_index = header
    day_index = None
    if not merge_days and day_column:
        day_index = _column_index(rows[header_row], day_column)
        if day_index is None:
            logger.warning("Day column '%s' not found; merging selection across days", day_column)

    ordered: list[str] = []
    scopes: dict[str, Optional[set[str]]] = {}
    for row in rows[header_row + 1 :]:
        if key_index >= len(row):
            continue
        day = ""
        if day_index is not None and day_index < len(row):
            day = (row[day_index] or "").strip()
        for raw in split_keys(row[key_index], delimiter):
            key = normalize(raw)
            if not key:
                continue
            if key not in scopes:
                ordered.append(key)
                scopes[key] = set()
            if day_index is None or not day:
                scopes[key] = None
            elif scopes[key] is not None:
                scopes[key].add(day)

    day_scopes = {key: frozenset(days) for key, days in scopes.items() if days is not None}
    return SelectionSet(keys=tuple(ordered), day_scopes=day_scopes)
