"""Spreadsheet reading for supplier uploads.

Turns an uploaded `.xlsx` or `.csv` file into a list of rows keyed by the
header row. Only the first (active) worksheet of a workbook is read.
"""

import csv
import io
from pathlib import PurePath
from typing import Any

import openpyxl

from app.config import settings
from app.core.errors import UnsupportedUploadFile
from app.infra.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = (".xlsx", ".csv")


def _cell_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _rows_to_dicts(table: list[tuple[Any, ...]]) -> list[dict[str, str]]:
    if not table:
        return []

    headers = [_cell_to_str(h) for h in table[0]]
    rows: list[dict[str, str]] = []
    for values in table[1:]:
        cells = [_cell_to_str(v) for v in values]
        if not any(cells):
            continue
        rows.append({h: cells[i] if i < len(cells) else "" for i, h in enumerate(headers) if h})
    return rows


def _read_xlsx(content: bytes, filename: str) -> list[tuple[Any, ...]]:
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        try:
            return list(workbook.active.iter_rows(values_only=True))
        finally:
            workbook.close()
    except Exception as e:
        raise UnsupportedUploadFile(f"Cannot read Excel file '{filename}': {e}") from e


def _read_csv(content: bytes, filename: str) -> list[tuple[Any, ...]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise UnsupportedUploadFile(f"'{filename}' is not UTF-8 encoded CSV") from e
    return [tuple(row) for row in csv.reader(io.StringIO(text))]


def read_rows(filename: str, content: bytes, max_rows: int | None = None) -> list[dict[str, str]]:
    """Parse an uploaded spreadsheet into header-keyed rows.

    Blank rows are dropped. Cell values are returned as trimmed strings.

    Args:
        filename: Original file name; its extension selects the reader
        content: Raw file bytes
        max_rows: Row limit (defaults to settings.upload_max_rows)

    Returns:
        Rows in file order

    Raises:
        UnsupportedUploadFile: If the type is unsupported, the file cannot be
            parsed or it has more rows than allowed
    """
    extension = PurePath(filename or "").suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedUploadFile(
            f"Unsupported file type '{extension or filename}', expected .xlsx or .csv"
        )

    table = _read_xlsx(content, filename) if extension == ".xlsx" else _read_csv(content, filename)
    rows = _rows_to_dicts(table)

    limit = max_rows or settings.upload_max_rows
    if len(rows) > limit:
        raise UnsupportedUploadFile(f"'{filename}' has {len(rows)} rows, the limit is {limit}")

    logger.info("Spreadsheet parsed", filename=filename, rows=len(rows))
    return rows
