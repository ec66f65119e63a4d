# services/api/core/spreadsheet.py
"""
Read an uploaded mark-scheme spreadsheet into headers + rows.

Only the first worksheet is read. The first non-empty row is the header
row; every following non-empty row becomes a dict keyed by header, with
blank cells as "" (the normalizer treats those as missing).
"""
from __future__ import annotations

import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils import get_column_letter

from core.errors import SpreadsheetError

logger = logging.getLogger(__name__)

XLSX_SUFFIXES = (".xlsx", ".xlsm")
CSV_SUFFIXES = (".csv", ".txt")


@dataclass
class SheetData:
    headers: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)


def _is_empty_cell(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def _header_names(raw_headers: Sequence[Any]) -> List[str]:
    """
    Stringify header cells; blank headers become "Column <letter>",
    repeated names get a _1, _2 ... suffix.
    """
    names: List[str] = []
    seen: Dict[str, int] = {}
    for i, cell in enumerate(raw_headers):
        name = "" if cell is None else str(cell).strip()
        if not name:
            name = f"Column {get_column_letter(i + 1)}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        names.append(name)
    return names


def _rows_to_sheet(raw_rows: Iterable[Sequence[Any]]) -> SheetData:
    header_row: Optional[List[str]] = None
    rows: List[Dict[str, Any]] = []

    for raw in raw_rows:
        values = list(raw)
        if all(_is_empty_cell(v) for v in values):
            continue
        if header_row is None:
            # trailing empty header cells are formatting noise
            while values and _is_empty_cell(values[-1]):
                values.pop()
            header_row = _header_names(values)
            continue

        row: Dict[str, Any] = {}
        for i, name in enumerate(header_row):
            v = values[i] if i < len(values) else None
            row[name] = "" if v is None else v
        rows.append(row)

    return SheetData(headers=header_row or [], rows=rows)


def read_xlsx(data: bytes) -> SheetData:
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise SpreadsheetError(f"Failed to parse Excel file: {e}") from e

    try:
        ws = wb.worksheets[0] if wb.worksheets else None
        if ws is None:
            raise SpreadsheetError("Excel file has no worksheets")
        return _rows_to_sheet(ws.iter_rows(values_only=True))
    finally:
        wb.close()


def read_csv(data: bytes) -> SheetData:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = data.decode("latin-1")

    try:
        dialect = csv.Sniffer().sniff(text[:4096], delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel
    return _rows_to_sheet(csv.reader(io.StringIO(text), dialect))


def read_spreadsheet(data: bytes, filename: str = "") -> SheetData:
    """
    Parse an uploaded file by extension (falling back to content sniffing).

    Raises:
        SpreadsheetError: empty, unsupported or unreadable file, or no header row
    """
    if not data:
        raise SpreadsheetError("Uploaded file is empty")

    name = (filename or "").lower()
    if name.endswith(".xls"):
        raise SpreadsheetError("Legacy .xls files are not supported, save the sheet as .xlsx or .csv")

    if name.endswith(XLSX_SUFFIXES) or (not name.endswith(CSV_SUFFIXES) and zipfile.is_zipfile(io.BytesIO(data))):
        sheet = read_xlsx(data)
    else:
        sheet = read_csv(data)

    if not sheet.headers:
        raise SpreadsheetError("No data found in spreadsheet or data format is invalid.")

    logger.info(
        f"Read spreadsheet {filename or '<upload>'}: "
        f"{len(sheet.rows)} rows, columns={sheet.headers}"
    )
    return sheet


def _display_value(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    if isinstance(v, (datetime, date, time)):
        return v.isoformat()
    return str(v)


def preview_rows(sheet: SheetData, limit: int = 5) -> List[Dict[str, str]]:
    """First `limit` rows with every value stringified for display."""
    return [
        {name: _display_value(row.get(name)) for name in sheet.headers}
        for row in sheet.rows[:limit]
    ]
