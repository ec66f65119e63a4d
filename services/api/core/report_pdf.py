# services/api/core/report_pdf.py

from __future__ import annotations

from typing import List, Optional, Sequence

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from models import Result, ResultItem, Test


# ---------- Public API -------------------------------------------------------

def generate_results_pdf(
    *,
    result: Result,
    items: Sequence[ResultItem],
    test: Optional[Test] = None,
    title: str = "Test Results",
    author: str = "Test Grader",
) -> bytes:
    """
    Render a result summary and per-question table as a PDF.

    Args:
        result: stored score summary (earned / total / percentage)
        items:  fresh per-question breakdown, already ordered by question number
        test:   optional, adds the test name under the title
        title, author: metadata + header text

    Returns:
        PDF bytes (ready to stream / download).
    """
    report = _ResultsReport(title=title, author=author)
    if test is not None:
        report.add_line(f"Test: {test.name}")
    report.add_line(
        f"Score: {result.score_percentage}% ({result.points_earned}/{result.total_points} points)"
    )
    report.add_table(items)
    return report.build()


# ---------- Internals --------------------------------------------------------

def _latin1(text: str) -> str:
    """Core fonts only cover latin-1; replace anything else."""
    return text.encode("latin-1", errors="replace").decode("latin-1")


class _ResultsReport:
    """
    A4 portrait, 15mm margins:
      - Title (bold), summary lines
      - Table: Q # | Student Answer | Expected Answer | Points | Status
      - Header row repeats on every page the table flows onto.
    """

    HEADERS = ("Q #", "Student Answer", "Expected Answer", "Points", "Status")
    # fractions of the content width
    COL_RATIOS = (0.10, 0.32, 0.32, 0.12, 0.14)
    ROW_H = 8

    def __init__(self, *, title: str, author: str):
        self._pdf = FPDF(orientation="P", unit="mm", format="A4")
        self._pdf.set_margins(15, 15, 15)
        self._pdf.set_auto_page_break(auto=False)
        self._pdf.add_page()
        self._pdf.set_author(_latin1(author))
        self._pdf.set_title(_latin1(title))

        self._pdf.set_font("Helvetica", "B", 18)
        self._pdf.cell(0, 12, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self._pdf.ln(2)

        content_w = self._pdf.w - self._pdf.l_margin - self._pdf.r_margin
        self.col_w: List[float] = [content_w * r for r in self.COL_RATIOS]

    def add_line(self, text: str) -> None:
        self._pdf.set_font("Helvetica", "", 12)
        self._pdf.cell(0, 8, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def _header_row(self) -> None:
        self._pdf.set_font("Helvetica", "B", 10)
        self._pdf.set_fill_color(66, 66, 66)
        self._pdf.set_text_color(255, 255, 255)
        for w, label in zip(self.col_w, self.HEADERS):
            self._pdf.cell(w, self.ROW_H, label, border=1, align="C", fill=True)
        self._pdf.ln(self.ROW_H)
        self._pdf.set_text_color(0, 0, 0)

    def _ensure_space(self) -> bool:
        """Start a new page if the next row won't fit. True when a page was added."""
        if self._pdf.get_y() + self.ROW_H > self._pdf.h - self._pdf.b_margin:
            self._pdf.add_page()
            return True
        return False

    def _fit(self, text: str, width: float) -> str:
        """Truncate with '...' so a cell never overflows its column."""
        text = _latin1(text)
        max_w = width - 2
        if self._pdf.get_string_width(text) <= max_w:
            return text
        while text and self._pdf.get_string_width(text + "...") > max_w:
            text = text[:-1]
        return text + "..."

    def add_table(self, items: Sequence[ResultItem]) -> None:
        self._pdf.ln(4)
        self._header_row()
        self._pdf.set_font("Helvetica", "", 10)

        for idx, item in enumerate(items):
            if self._ensure_space():
                self._header_row()
                self._pdf.set_font("Helvetica", "", 10)

            cells = (
                str(item.question_number),
                item.student_answer or "-",
                item.expected_answer or "-",
                f"{item.earned_points}/{item.points}",
                "Correct" if item.correct else "Incorrect",
            )
            # alternate row shading
            shade = idx % 2 == 1
            self._pdf.set_fill_color(245, 245, 245)
            for col, (w, value) in enumerate(zip(self.col_w, cells)):
                align = "L" if col in (1, 2) else "C"
                self._pdf.cell(w, self.ROW_H, self._fit(value, w), border=1, align=align, fill=shade)
            self._pdf.ln(self.ROW_H)

        if not items:
            self._pdf.set_font("Helvetica", "I", 10)
            self._pdf.cell(0, self.ROW_H, "No mark scheme entries.", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def build(self) -> bytes:
        return bytes(self._pdf.output())
