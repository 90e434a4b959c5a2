from __future__ import annotations  # Styled PDF rendering for completed interview reports

import math
import os
import re
import textwrap
from datetime import datetime
from typing import Any, List, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from .models import FeedbackItem, Report

DEJAVU_SANS = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"  # System font
DEJAVU_SANS_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"  # System font

ACCENT = (45, 115, 245)  # Palette accent
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
SOFT_ACCENT_BG = (243, 248, 255)  # Highlight background


def _format_datetime(value: datetime | None) -> str:  # Format timestamp for display
    if not value:
        return "-"
    return value.strftime("%d %b %Y, %I:%M %p").lstrip("0").replace(" 0", " ")


def _effective_width(pdf: FPDF) -> float:  # Compute effective page width
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


def _section_title(pdf: ReportPDF, title: str) -> None:  # Render styled section title
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf.font_bold, "B", 13)
    pdf.cell(0, 9, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _meta_block(pdf: ReportPDF, rows: List[Tuple[str, str]]) -> None:  # Draw two-column metadata
    col = _effective_width(pdf) / 2.0
    line = 6
    for idx in range(0, len(rows), 2):
        left = rows[idx]
        right = rows[idx + 1] if idx + 1 < len(rows) else ("", "")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.cell(col, line, left[0], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, right[0], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf.font_bold, "B", 11)
        pdf.cell(col, line, left[1], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, right[1], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _score_value(value: float | None) -> str:  # Format score for display
    if value is None:
        return "N/A"
    return f"{float(value):.1f}/5"


def _calc_text_height(pdf: FPDF, width: float, text: str, line_height: float) -> float:  # Estimate multi-cell height
    if not text:
        return line_height
    lines = pdf.multi_cell(width, line_height, text, dry_run=True, output="LINES")
    if isinstance(lines, (list, tuple)):
        return line_height * max(1, len(lines))
    return max(1, math.ceil(len(text) / 90)) * line_height


class ReportPDF(FPDF):  # PDF with custom header/footer styling
    def __init__(self, *args, accent: Tuple[int, int, int] = ACCENT, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.accent = accent
        self.header_title = "Interview Report"
        self.font_regular = "Helvetica"
        self.font_bold = "Helvetica"
        self.supports_unicode = False

    def use_unicode_font(self) -> None:  # Switch to DejaVu when the system ships it
        if not (os.path.exists(DEJAVU_SANS) and os.path.exists(DEJAVU_SANS_BOLD)):
            return
        self.add_font("DejaVu", "", DEJAVU_SANS)
        self.add_font("DejaVu", "B", DEJAVU_SANS_BOLD)
        self.font_regular = "DejaVu"
        self.font_bold = "DejaVu"
        self.supports_unicode = True

    @property
    def bullet(self) -> str:
        return "•" if self.supports_unicode else "-"

    def prepare_text(self, text: Any) -> str:  # Sanitize text for core fonts
        value = "" if text is None else str(text)
        if self.supports_unicode:
            return value
        value = value.replace("•", "-").replace("…", "...").replace("’", "'")
        return value.encode("latin-1", "ignore").decode("latin-1")

    def cell(self, w=None, h=None, text="", *args, **kwargs):  # Wrap base cell with text sanitisation
        return super().cell(w, h, self.prepare_text(text), *args, **kwargs)

    def multi_cell(self, w, h=None, text="", *args, **kwargs):  # Wrap base multi_cell with text sanitisation
        return super().multi_cell(w, h, self.prepare_text(text), *args, **kwargs)

    def header(self) -> None:  # Render header banner
        usable = _effective_width(self)
        if self.page_no() == 1:
            line_height = 8
            self.set_font(self.font_bold, "B", 16)
            lines = self.multi_cell(usable, line_height, self.header_title, dry_run=True, output="LINES")
            banner = 6 + max(1, len(lines)) * line_height + 4
            self.set_fill_color(*self.accent)
            self.rect(0, 0, self.w, banner, style="F")
            self.set_text_color(255, 255, 255)
            self.set_xy(self.l_margin, 6)
            self.multi_cell(usable, line_height, self.header_title)
            self.set_text_color(*TEXT)
            self.ln(4)
        else:
            self.set_text_color(80, 80, 80)
            self.set_xy(self.l_margin, 8)
            self.set_font(self.font_bold, "B", 12)
            self.multi_cell(usable, 6, self.header_title)
            mark = self.get_y()
            self.set_draw_color(*self.accent)
            self.set_line_width(0.4)
            self.line(self.l_margin, mark + 1, self.w - self.r_margin, mark + 1)
            self.set_text_color(*TEXT)
            self.ln(4)

    def footer(self) -> None:  # Render footer with pagination
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font(self.font_regular, "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _summarize(text: str, width: int = 380) -> str:  # Shorten longer paragraphs
    cleaned = " ".join(text.split()) if text else ""
    if not cleaned:
        return "-"
    segments = [seg.strip() for seg in re.split(r"(?<=[.!?])\s+", cleaned) if seg.strip()]
    snippet = " ".join(segments[:3]) or cleaned
    return textwrap.shorten(snippet, width=width, placeholder="...")


def _paragraph(pdf: ReportPDF, label: str, text: str) -> None:  # Labelled narrative paragraph
    pdf.set_x(pdf.l_margin)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf.font_bold, "B", 11)
    pdf.cell(0, 7, label, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_text_color(*TEXT)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.multi_cell(_effective_width(pdf), 5.5, text.strip() or "-")
    pdf.ln(2)


def _render_score_table(pdf: ReportPDF, report: Report) -> None:  # Draw per-category means
    widths = [_effective_width(pdf) * 0.6, _effective_width(pdf) * 0.4]
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(*ACCENT)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font(pdf.font_bold, "B", 10)
    pdf.cell(widths[0], 8, "Category", align="L", fill=True)
    pdf.cell(widths[1], 8, "Score", align="L", fill=True)
    pdf.ln(8)
    pdf.set_text_color(*TEXT)
    pdf.set_font(pdf.font_regular, "", 10)
    for idx, (name, value) in enumerate(report.final_scores.model_dump().items()):
        fill = idx % 2 == 0
        if fill:
            pdf.set_fill_color(247, 250, 255)
        pdf.set_x(pdf.l_margin)
        pdf.cell(widths[0], 7, name.title(), border=0, fill=fill)
        pdf.cell(widths[1], 7, _score_value(value) if value else "Not assessed", border=0, fill=fill)
        pdf.ln(7)
    pdf.ln(3)
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(*SOFT_ACCENT_BG)
    pdf.rect(pdf.l_margin, pdf.get_y(), _effective_width(pdf), 16, style="F")
    pdf.set_xy(pdf.l_margin + 6, pdf.get_y() + 4)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.cell(_effective_width(pdf) - 12, 6, "Overall Score")
    pdf.set_xy(pdf.l_margin, pdf.get_y() - 2)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf.font_bold, "B", 14)
    pdf.cell(_effective_width(pdf) - 6, 8, _score_value(report.overall_score), align="R")
    pdf.ln(12)
    pdf.set_text_color(*TEXT)


def _feedback_highlights(item: FeedbackItem) -> List[str]:  # Side column lines for one answer
    lines = [f"Score: {_score_value(item.score)}", f"Category: {item.category.title()}"]
    if item.evaluation_method == "heuristic":
        lines.append("Scored heuristically")
    if item.code_execution is not None:
        lines.append(f"Code run: {item.code_execution.status or 'unknown'}")
    if item.tips:
        lines.append(f"Tip: {_summarize(item.tips, width=160)}")
    return lines


def _render_feedback_row(pdf: ReportPDF, left: float, right: float, gap: float, item: FeedbackItem) -> None:  # Q&A row
    line = 5.5
    question = f"Q: {(item.question or '-').strip()}"
    answer = f"A: {_summarize(item.answer or '-', width=600)}"
    details = f"Feedback: {_summarize(item.details)}" if item.details else ""
    highlights = _feedback_highlights(item)
    text_height = _calc_text_height(pdf, left, question, line) + _calc_text_height(pdf, left, answer, line)
    if details:
        text_height += _calc_text_height(pdf, left, details, line)
    side_height = sum(_calc_text_height(pdf, right, entry, line) for entry in highlights)
    block = max(text_height, side_height) + 6
    if pdf.get_y() + block > pdf.page_break_trigger:
        pdf.add_page()
    origin_x = pdf.l_margin
    origin_y = pdf.get_y()
    pdf.set_fill_color(248, 249, 255)
    pdf.rect(origin_x, origin_y, left, block, style="F")
    pdf.set_xy(origin_x + 2, origin_y + 2)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf.font_bold, "B", 10)
    pdf.multi_cell(left - 4, line, question)
    pdf.set_x(origin_x + 2)
    pdf.set_text_color(60, 60, 60)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.multi_cell(left - 4, line, answer)
    if details:
        pdf.set_x(origin_x + 2)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 9)
        pdf.multi_cell(left - 4, line, details)
    pdf.set_xy(origin_x + left + gap, origin_y + 2)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf.font_bold, "B", 9)
    pdf.multi_cell(right, line, highlights[0])
    for extra in highlights[1:]:
        pdf.set_x(origin_x + left + gap)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf.font_regular, "", 9)
        pdf.multi_cell(right, line, f"{pdf.bullet} {extra}")
    bottom = max(pdf.get_y(), origin_y + block - 2)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    pdf.line(origin_x, bottom + 1, origin_x + left + gap + right, bottom + 1)
    pdf.set_y(bottom + 4)
    pdf.set_text_color(*TEXT)


def _render_feedback(pdf: ReportPDF, feedback: Sequence[FeedbackItem]) -> None:  # Render per-answer section
    if not feedback:
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.multi_cell(_effective_width(pdf), 6, "No answers were recorded for this session.")
        pdf.set_text_color(*TEXT)
        pdf.ln(4)
        return
    total = _effective_width(pdf)
    gap = 6.0
    right = total * 0.3
    left = total - right - gap
    for item in feedback:
        _render_feedback_row(pdf, left, right, gap, item)


def generate_report_pdf(report: Report) -> bytes:  # Build PDF payload for a completed report
    pdf = ReportPDF()
    pdf.use_unicode_font()
    pdf.alias_nb_pages()
    pdf.header_title = f"{report.role} - {report.company} - Interview Report"
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _section_title(pdf, "Session Overview")
    meta = report.metadata
    duration = meta.session_duration_minutes
    _meta_block(
        pdf,
        [
            ("Report ID", report.id),
            ("Session ID", report.session_id),
            ("Role", report.role),
            ("Company", report.company),
            ("Questions Answered", f"{meta.answered_questions}/{meta.total_questions}"),
            ("Duration", f"{duration} min" if duration is not None else "-"),
            ("Created", _format_datetime(report.created_at)),
            ("Updated", _format_datetime(report.updated_at)),
        ],
    )

    _section_title(pdf, "Scores")
    _render_score_table(pdf, report)

    _section_title(pdf, "Summary")
    summary = report.summary
    _paragraph(pdf, "Strengths", summary.strengths if summary else "")
    _paragraph(pdf, "Areas to Improve", summary.weaknesses if summary else "")
    _paragraph(pdf, "Next Steps", summary.next_steps if summary else "")

    _section_title(pdf, "Answer Feedback")
    _render_feedback(pdf, report.detailed_feedback)

    if meta.processing_errors:
        _section_title(pdf, "Processing Notes")
        pdf.set_font(pdf.font_regular, "", 9)
        pdf.set_text_color(*MUTED)
        for note in meta.processing_errors:
            pdf.multi_cell(_effective_width(pdf), 5, f"{pdf.bullet} {note}")

    return bytes(pdf.output())


__all__ = ["ReportPDF", "generate_report_pdf"]
