from __future__ import annotations  # Styled PDF rendering for assessment results

import os
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from grading.engine import TestOutcome
from services.models import ScoreCard, Session


DEJAVU_SANS = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"  # System font
DEJAVU_SANS_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"  # System font
DEJAVU_MONO = "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf"  # System font

ACCENT = (45, 115, 245)  # Palette accent
PASS = (34, 139, 84)  # Passed outcome
FAIL = (200, 55, 55)  # Failed outcome
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
SOFT_ACCENT_BG = (243, 248, 255)  # Highlight background

CONSOLE_SYMBOLS = {"✅": "[PASS]", "❌": "[FAIL]", "⚠️": "[!]", "⚠": "[!]", "•": "-"}


def _format_datetime(value: Optional[datetime]) -> str:  # Format timestamp for display
    if not value:
        return "-"
    return value.strftime("%d %b %Y, %H:%M:%S UTC")


def _format_duration(seconds: Optional[int]) -> str:
    if seconds is None:
        return "-"
    minutes, rest = divmod(int(seconds), 60)
    return f"{minutes}m {rest:02d}s"


def _effective_width(pdf: FPDF) -> float:  # Compute effective page width
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


class ResultsPDF(FPDF):  # PDF with banner header and paginated footer
    def __init__(self, *args, accent: Tuple[int, int, int] = ACCENT, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.accent = accent
        self.header_title = "Assessment Results"
        self.font_regular = "Helvetica"
        self.font_bold = "Helvetica"
        self.font_mono = "Courier"
        self.supports_unicode = False

    def use_unicode_fonts(self) -> bool:  # Register DejaVu when the system ships it
        if not all(os.path.exists(path) for path in (DEJAVU_SANS, DEJAVU_SANS_BOLD, DEJAVU_MONO)):
            return False
        self.add_font("DejaVu", "", DEJAVU_SANS)
        self.add_font("DejaVu", "B", DEJAVU_SANS_BOLD)
        self.add_font("DejaVuMono", "", DEJAVU_MONO)
        self.font_regular = "DejaVu"
        self.font_bold = "DejaVu"
        self.font_mono = "DejaVuMono"
        self.supports_unicode = True
        return True

    def prepare_text(self, text: Any) -> str:  # Sanitize text for latin-1 core fonts
        value = "" if text is None else str(text)
        for symbol, plain in CONSOLE_SYMBOLS.items():
            value = value.replace(symbol, plain)
        # Emoji sit outside the BMP and no bundled font carries them
        value = "".join(ch for ch in value if ord(ch) <= 0xFFFF)
        if self.supports_unicode:
            return value
        return value.encode("latin-1", "ignore").decode("latin-1")

    def cell(self, w=None, h=None, text="", *args, **kwargs):  # Wrap base cell with text sanitisation
        return super().cell(w, h, self.prepare_text(text), *args, **kwargs)

    def multi_cell(self, w, h=None, text="", *args, **kwargs):  # Wrap base multi_cell with text sanitisation
        return super().multi_cell(w, h, self.prepare_text(text), *args, **kwargs)

    def header(self) -> None:  # Render header banner
        usable = _effective_width(self)
        if self.page_no() == 1:
            self.set_fill_color(*self.accent)
            self.rect(0, 0, self.w, 20, style="F")
            self.set_text_color(255, 255, 255)
            self.set_font(self.font_bold, "B", 16)
            self.set_xy(self.l_margin, 6)
            self.multi_cell(usable, 8, self.header_title)
            self.set_text_color(*TEXT)
            self.ln(6)
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


def _section_title(pdf: ResultsPDF, title: str) -> None:  # Render styled section title
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf.font_bold, "B", 13)
    pdf.cell(0, 9, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _meta_block(pdf: ResultsPDF, rows: List[Tuple[str, str]]) -> None:  # Draw two-column metadata
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
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf.font_bold, "B", 11)
        pdf.cell(col, line, left[1], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, right[1], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _score_box(pdf: ResultsPDF, card: ScoreCard) -> None:  # Highlighted headline score
    width = _effective_width(pdf)
    top = pdf.get_y()
    pdf.set_fill_color(*SOFT_ACCENT_BG)
    pdf.rect(pdf.l_margin, top, width, 16, style="F")
    pdf.set_xy(pdf.l_margin + 6, top + 5)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.cell(width / 2, 6, f"Bugs fixed: {card.bugs_passed}/{card.total_bugs}")
    pdf.set_xy(pdf.l_margin, top + 4)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf.font_bold, "B", 14)
    pdf.cell(width - 6, 8, f"{card.score:.1f}/{card.max_score:.0f}  ({card.percentage}%)", align="R")
    pdf.set_y(top + 20)
    pdf.set_text_color(*TEXT)


def _render_outcome_table(pdf: ResultsPDF, variant: str, outcomes: Sequence[TestOutcome]) -> None:
    widths = [_effective_width(pdf) * ratio for ratio in (0.08, 0.32, 0.12, 0.48)]
    pdf.set_x(pdf.l_margin)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_bold, "B", 10)
    pdf.cell(0, 7, f"Variant: {variant}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_fill_color(*ACCENT)
    pdf.set_text_color(255, 255, 255)
    for idx, title in enumerate(("#", "Check", "Result", "Detail")):
        pdf.cell(widths[idx], 8, title, align="L", fill=True)
    pdf.ln(8)
    pdf.set_font(pdf.font_regular, "", 9)
    for idx, outcome in enumerate(outcomes):
        fill = idx % 2 == 0
        if fill:
            pdf.set_fill_color(247, 250, 255)
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*TEXT)
        pdf.cell(widths[0], 7, str(outcome.ordinal), fill=fill)
        pdf.cell(widths[1], 7, outcome.name, fill=fill)
        pdf.set_text_color(*(PASS if outcome.passed else FAIL))
        pdf.cell(widths[2], 7, "PASS" if outcome.passed else "FAIL", fill=fill)
        pdf.set_text_color(*TEXT)
        pdf.multi_cell(widths[3], 7, outcome.message, fill=fill, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(3)


def _muted_line(pdf: ResultsPDF, text: str) -> None:
    pdf.set_x(pdf.l_margin)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.multi_cell(_effective_width(pdf), 6, text, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_text_color(*TEXT)
    pdf.ln(2)


def _code_block(pdf: ResultsPDF, text: str) -> None:
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(248, 248, 248)
    pdf.set_text_color(*TEXT)
    pdf.set_font(pdf.font_mono, "", 8)
    pdf.multi_cell(_effective_width(pdf), 4, text, fill=True, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(3)


def generate_results_pdf(session: Session, card: ScoreCard) -> bytes:  # Build PDF payload for a session
    pdf = ResultsPDF()
    pdf.alias_nb_pages()
    pdf.use_unicode_fonts()
    pdf.header_title = f"{session.challenge_id} - {session.subject_name} - Results"
    pdf.set_margins(15, 24, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    submission = session.submission
    _section_title(pdf, "Session Overview")
    _meta_block(
        pdf,
        [
            ("Session ID", session.id),
            ("Candidate", session.subject_name),
            ("Challenge", session.challenge_id),
            ("Status", session.status.title()),
            ("Created", _format_datetime(session.created_at)),
            ("Submitted", _format_datetime(submission.submitted_at if submission else None)),
            ("Time used", _format_duration(submission.seconds_used if submission else None)),
            ("Submission", ("Auto (timer)" if submission.is_auto_submit else "Manual") if submission else "-"),
        ],
    )

    _section_title(pdf, "Score")
    _score_box(pdf, card)

    _section_title(pdf, "Test Results")
    if not session.variant_outcomes:
        _muted_line(pdf, "No test runs recorded for this session.")
    for variant, outcomes in session.variant_outcomes.items():
        _render_outcome_table(pdf, variant, outcomes)

    _section_title(pdf, "Integrity")
    if session.paste_attempts:
        stamps = ", ".join(at.strftime("%H:%M:%S") for at in session.paste_attempts)
        _muted_line(pdf, f"{len(session.paste_attempts)} paste attempt(s) blocked at {stamps}.")
    else:
        _muted_line(pdf, "No paste attempts detected.")

    _section_title(pdf, "Final Code")
    _code_block(pdf, session.code or "-")

    if session.output:
        _section_title(pdf, "Last Console Output")
        _code_block(pdf, session.output)

    return bytes(pdf.output())


__all__ = ["ResultsPDF", "generate_results_pdf"]
