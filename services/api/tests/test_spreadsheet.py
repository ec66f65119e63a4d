"""
Tests for reading uploaded spreadsheets.

Run with: pytest tests/test_spreadsheet.py -v
"""
import io

import pytest
from openpyxl import Workbook

from core.errors import SpreadsheetError
from core.spreadsheet import preview_rows, read_spreadsheet


def _xlsx_bytes(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


class TestReadXlsx:
    """Tests for .xlsx uploads."""

    def test_headers_and_rows(self):
        data = _xlsx_bytes([
            ["Question", "Answer", "Points"],
            [1, "A", 5],
            [2, "B", None],
        ])
        sheet = read_spreadsheet(data, "key.xlsx")
        assert sheet.headers == ["Question", "Answer", "Points"]
        assert sheet.rows == [
            {"Question": 1, "Answer": "A", "Points": 5},
            {"Question": 2, "Answer": "B", "Points": ""},
        ]

    def test_blank_rows_skipped(self):
        data = _xlsx_bytes([
            ["Q", "Answer"],
            [None, None],
            [1, "C"],
        ])
        sheet = read_spreadsheet(data, "key.xlsx")
        assert sheet.rows == [{"Q": 1, "Answer": "C"}]

    def test_detected_without_extension(self):
        data = _xlsx_bytes([["Q", "A"], [1, "B"]])
        assert read_spreadsheet(data, "upload").headers == ["Q", "A"]

    def test_corrupt_file(self):
        with pytest.raises(SpreadsheetError):
            read_spreadsheet(b"definitely not a workbook", "key.xlsx")


class TestReadCsv:
    """Tests for .csv uploads."""

    def test_basic(self):
        data = "Question,Answer,Points\n1,A,5\n2,b,\n".encode("utf-8")
        sheet = read_spreadsheet(data, "key.csv")
        assert sheet.headers == ["Question", "Answer", "Points"]
        assert sheet.rows[1] == {"Question": "2", "Answer": "b", "Points": ""}

    def test_bom_and_semicolons(self):
        data = b"\xef\xbb\xbfQ;Answer\n1;A\n"
        sheet = read_spreadsheet(data, "key.csv")
        assert sheet.headers == ["Q", "Answer"]
        assert sheet.rows == [{"Q": "1", "Answer": "A"}]

    def test_blank_and_repeated_headers(self):
        data = b"Answer,,Answer\nA,x,B\n"
        sheet = read_spreadsheet(data, "key.csv")
        assert sheet.headers == ["Answer", "Column B", "Answer_1"]

    def test_short_rows_padded(self):
        data = b"Q,Answer,Points\n1,A\n"
        assert read_spreadsheet(data, "key.csv").rows == [{"Q": "1", "Answer": "A", "Points": ""}]


class TestReadErrors:

    def test_empty_upload(self):
        with pytest.raises(SpreadsheetError):
            read_spreadsheet(b"", "key.csv")

    def test_legacy_xls(self):
        with pytest.raises(SpreadsheetError):
            read_spreadsheet(b"\xd0\xcf\x11\xe0", "key.xls")

    def test_no_header_row(self):
        with pytest.raises(SpreadsheetError):
            read_spreadsheet(b"\n\n , \n", "key.csv")


class TestPreviewRows:

    def test_stringified_and_limited(self):
        data = _xlsx_bytes([["Q", "Points"]] + [[i, 2.0] for i in range(1, 9)])
        sheet = read_spreadsheet(data, "key.xlsx")
        preview = preview_rows(sheet)
        assert len(preview) == 5
        assert preview[0] == {"Q": "1", "Points": "2"}
