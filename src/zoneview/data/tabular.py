"""Turn CSV text or Excel workbooks into rows of strings."""

from __future__ import annotations

import csv
import io
from typing import Any

from openpyxl import load_workbook

Rows = list[list[str]]

_XLSX_MAGIC = b"PK\x03\x04"


def _is_blank(row: list[str]) -> bool:
    return not any(cell.strip() for cell in row)


def parse_csv_text(text: str) -> Rows:
    """Parse RFC4180-style CSV; a leading BOM is dropped and blank rows are ignored."""

    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.reader(io.StringIO(text, newline=""))
    return [[cell.strip() for cell in row] for row in reader if row and not _is_blank(row)]


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_xlsx_bytes(payload: bytes) -> Rows:
    """Read the first worksheet of an .xlsx workbook."""

    workbook = load_workbook(io.BytesIO(payload), read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        rows: Rows = []
        for values in sheet.iter_rows(values_only=True):
            row = [_cell_text(value) for value in values]
            if row and not _is_blank(row):
                rows.append(row)
        return rows
    finally:
        workbook.close()


def rows_from_payload(payload: bytes, name: str = "") -> Rows:
    if name.lower().endswith(".xlsx") or payload.startswith(_XLSX_MAGIC):
        return parse_xlsx_bytes(payload)
    return parse_csv_text(payload.decode("utf-8-sig"))
