"""Customer sheet parsing."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from ...models.domain import CustomerPoint
from ..geospatial import valid_coordinate

logger = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 50

_COORDINATE_PAIR = re.compile(
    r"^\s*\(?\s*([-+]?\d+(?:\.\d+)?)\s*[,;\s]\s*([-+]?\d+(?:\.\d+)?)\s*\)?\s*$"
)


@dataclass(frozen=True, slots=True)
class CustomerParse:
    points: tuple[CustomerPoint, ...]
    skipped: int
    header_row: Optional[int]


def parse_coordinates(text: str) -> Optional[tuple[float, float]]:
    """Parse ``"lat, lng"`` text; returns None for malformed or out-of-range values."""

    match = _COORDINATE_PAIR.match(text or "")
    if not match:
        return None
    lat, lng = float(match.group(1)), float(match.group(2))
    if not valid_coordinate(lat, lng):
        return None
    return lat, lng


def _float(text: str) -> Optional[float]:
    try:
        return float((text or "").replace(",", "").strip())
    except ValueError:
        return None


def _index(row: Sequence[str], label: str) -> Optional[int]:
    wanted = label.strip().lower()
    for index, cell in enumerate(row):
        if (cell or "").strip().lower() == wanted:
            return index
    return None


def parse_customer_rows(
    rows: Sequence[Sequence[str]],
    *,
    coordinates_column: str = "Verified Coordinates",
    note_column: str = "Order Note",
) -> CustomerParse:
    """Turn customer rows into points; rows with unreadable coordinates are skipped."""

    header_row = None
    coords_index = lat_index = lng_index = note_index = None
    for row_index, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        coords_index = _index(row, coordinates_column)
        lat_index = _index(row, "latitude") if coords_index is None else None
        lng_index = _index(row, "longitude") if coords_index is None else None
        note_index = _index(row, note_column)
        if coords_index is not None or (lat_index is not None and lng_index is not None) or note_index is not None:
            header_row = row_index
            break

    if header_row is None:
        logger.warning("Customer sheet has no '%s' or latitude/longitude header", coordinates_column)
        return CustomerParse(points=(), skipped=0, header_row=None)

    points: list[CustomerPoint] = []
    skipped = 0
    for row_number, row in enumerate(rows[header_row + 1 :], start=header_row + 1):
        def cell(index: Optional[int]) -> str:
            return (row[index] or "").strip() if index is not None and index < len(row) else ""

        position: Optional[tuple[float, float]] = None
        if coords_index is not None:
            position = parse_coordinates(cell(coords_index))
        elif lat_index is not None and lng_index is not None:
            lat, lng = _float(cell(lat_index)), _float(cell(lng_index))
            if lat is not None and lng is not None and valid_coordinate(lat, lng):
                position = (lat, lng)

        if position is None:
            skipped += 1
            continue
        points.append(CustomerPoint(lat=position[0], lng=position[1], note=cell(note_index), row=row_number))

    if skipped:
        logger.info("Skipped %d customer rows without usable coordinates", skipped)
    return CustomerParse(points=tuple(points), skipped=skipped, header_row=header_row)
