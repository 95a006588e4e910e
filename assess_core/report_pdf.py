"""A4 PDF of a graded submission, drawn with reportlab.

Page one carries the full identity block, the score and the single
deadline-relative submission line; later pages repeat a short header.
Every page is numbered "Page i of n".
"""
from __future__ import annotations

import re
from io import BytesIO
from typing import List

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .deadline import submission_line
from .types import Catalog, QuestionResult, SubmissionSnapshot

_MAROON = (110 / 255, 24 / 255, 24 / 255)
_STATUS_COLOURS = {
    "correct": (0.18, 0.49, 0.20),
    "partial": (0.98, 0.66, 0.15),
    "wrong": (0.78, 0.16, 0.16),
}
_RESULT_TEXT = {"correct": "Correct", "partial": "Partially correct", "wrong": "Incorrect"}

MARGIN_X = 10 * mm
MARGIN_TOP = 80 * mm
MARGIN_BOTTOM = 14 * mm
BODY_FONT = "Helvetica"
BODY_SIZE = 10
LEADING = 13


class _NumberedCanvas(canvas.Canvas):
    """Defers page output so the total page count is known when numbering."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_pages: List[dict] = []

    def showPage(self):
        self._saved_pages.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_pages)
        for idx, state in enumerate(self._saved_pages, start=1):
            self.__dict__.update(state)
            width, height = self._pagesize
            self.setFont(BODY_FONT, 9)
            self.setFillColorRGB(120 / 255, 130 / 255, 140 / 255)
            self.drawCentredString(width / 2, 6 * mm, f"Page {idx} of {total}")
            super().showPage()
        super().save()


def _plain(text: str) -> str:
    return re.sub(r"<[^>]+>", "", text or "").strip()


class PdfRenderer:
    media_type = "application/pdf"
    extension = "pdf"

    def render(self, snapshot: SubmissionSnapshot, catalog: Catalog) -> bytes:
        buf = BytesIO()
        c = _NumberedCanvas(buf, pagesize=A4)
        c.setTitle(f"{snapshot.assessment_title} – {snapshot.student_name}")
        self._width, self._height = A4
        self._header(c, snapshot, catalog, first_page=True)
        y = self._height - MARGIN_TOP
        for result in snapshot.results:
            lines = self._feedback_lines(result)
            needed = LEADING * (len(lines) + 1)
            if y - needed < MARGIN_BOTTOM:
                c.showPage()
                self._header(c, snapshot, catalog, first_page=False)
                y = self._height - MARGIN_TOP
            y = self._draw_feedback(c, result, lines, y)
        c.showPage()
        c.save()
        return buf.getvalue()

    def _header(self, c: canvas.Canvas, s: SubmissionSnapshot, catalog: Catalog, first_page: bool) -> None:
        w, h = self._width, self._height
        c.setFillColorRGB(*_MAROON)
        c.rect(0, h - 30 * mm, w, 30 * mm, stroke=0, fill=1)
        c.setFillColorRGB(1, 1, 1)
        c.setFont("Helvetica-Bold", 16)
        c.drawString(35 * mm, h - 15 * mm, catalog.title or "Assessment")
        c.setFont(BODY_FONT, 12)
        c.drawString(35 * mm, h - 22 * mm, catalog.subtitle or "")

        c.setFillColorRGB(0, 0, 0)
        c.setFont(BODY_FONT, 12)
        y = h - 40 * mm
        if first_page:
            c.drawString(MARGIN_X, y, f"Student: {s.student_name}")
            c.drawString(MARGIN_X, y - 7 * mm, f"ID: {s.student_id}")
            c.drawString(110 * mm, y, f"Teacher: {s.teacher_name}")
            c.drawString(MARGIN_X, y - 15 * mm, f"Assessment: {s.assessment_title}")
            if s.assessment_subtitle:
                c.drawString(MARGIN_X, y - 22 * mm, f"Part: {s.assessment_subtitle}")
            c.drawString(MARGIN_X, y - 29 * mm, f"Score: {s.points}/{s.total_points} ({s.pct}%)")
            line = submission_line(s.deadline_info)
            if line:
                c.setFont(BODY_FONT, 11)
                c.drawString(MARGIN_X, y - 38 * mm, line)
        else:
            c.drawString(MARGIN_X, y, f"Student: {s.student_name} ({s.student_id})")
            c.drawString(MARGIN_X, y - 7 * mm, f"Assessment: {s.assessment_title}")
            if s.assessment_subtitle:
                c.setFont(BODY_FONT, 11)
                c.drawString(MARGIN_X, y - 14 * mm, f"Part: {s.assessment_subtitle}")

    def _feedback_lines(self, r: QuestionResult) -> List[str]:
        width = self._width - 2 * MARGIN_X - 4 * mm
        lines: List[str] = []
        for text in (
            f"{r.label or r.id}: {_plain(r.text)}",
            f"Your answer: {r.answer or 'No answer provided'}",
            f"Result: {_RESULT_TEXT[r.status]} ({r.earned}/{r.max} marks)",
        ):
            for para in text.splitlines() or [""]:
                lines.extend(simpleSplit(para, BODY_FONT, BODY_SIZE, width) or [""])
        return lines

    def _draw_feedback(self, c: canvas.Canvas, r: QuestionResult, lines: List[str], y: float) -> float:
        top = y
        c.setFont(BODY_FONT, BODY_SIZE)
        c.setFillColorRGB(0, 0, 0)
        for line in lines:
            c.drawString(MARGIN_X + 4 * mm, y, line)
            y -= LEADING
        c.setStrokeColorRGB(*_STATUS_COLOURS[r.status])
        c.setLineWidth(2)
        c.line(MARGIN_X, top + LEADING - 3, MARGIN_X, y + LEADING - 3)
        return y - LEADING
