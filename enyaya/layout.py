"""
Award Layout Engine
===================

Lays out an arbitration award / mediation report on fixed-size A4 pages.

The engine is pure: it takes a validated AwardDocument and returns a list
of pages, each holding positioned text placements. Serializing the pages to
PDF is done by `exporter.build_award_pdf`.

Coordinates are millimetres measured from the left / top edge of the page.
Text widths come from the PDF backend's font metrics (reportlab), so the
line breaks here are exactly the ones the PDF will show.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth

from .schemas import AdvocateInfo, AwardDocument

# Page geometry (A4 portrait)
PAGE_WIDTH = 210.0
PAGE_HEIGHT = 297.0
MARGIN = 20.0
TOP_MARGIN = 20.0
USABLE_WIDTH = PAGE_WIDTH - 2 * MARGIN
INDENT = 5.0

# Vertical advances
LINE_HEIGHT = 5.0
HEADING_GAP = 8.0
SECTION_GAP = 8.0

# Cursor limits. A section never starts below SECTION_BREAK_Y so its heading
# is always followed by at least one body line on the same page.
ENTRY_BREAK_Y = 270.0
SECTION_BREAK_Y = 250.0
PAGE_BOTTOM_Y = 280.0

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

FOOTER_TEXT = "This document is generated by eNyaya Resolve"


@dataclass(frozen=True)
class TextStyle:
    font: str = FONT
    size: float = 11
    align: str = "left"  # left | center
    gray: float = 0.0  # 0 = black, 1 = white

    @property
    def bold(self) -> bool:
        return self.font == FONT_BOLD


TITLE = TextStyle(FONT_BOLD, 16, "center")
SUBTITLE = TextStyle(FONT_BOLD, 12, "center")
SECTION_HEADING = TextStyle(FONT_BOLD, 12)
HEADING = TextStyle(FONT_BOLD, 11)
BODY = TextStyle(FONT, 11)
FOOTER = TextStyle(FONT, 9, "center", gray=100 / 255)


@dataclass(frozen=True)
class Placement:
    """A single line of text at a fixed position"""
    text: str
    x: float
    y: float
    style: TextStyle


@dataclass
class Page:
    number: int
    placements: List[Placement] = field(default_factory=list)

    def texts(self) -> List[str]:
        return [p.text for p in self.placements]


def format_date(value: datetime) -> str:
    """Calendar date as printed on Indian legal documents (d/m/yyyy)."""
    return f"{value.day}/{value.month}/{value.year}"


def measure(text: str, style: TextStyle = BODY) -> float:
    """Rendered width of `text` in millimetres."""
    return stringWidth(text, style.font, style.size) / mm


def _split_long_word(word: str, width: float, style: TextStyle) -> List[str]:
    pieces = []
    current = ""
    for ch in word:
        if current and measure(current + ch, style) > width:
            pieces.append(current)
            current = ch
        else:
            current += ch
    if current:
        pieces.append(current)
    return pieces


def wrap_text(text: str, width: float, style: TextStyle = BODY) -> List[str]:
    """
    Break text into lines no wider than `width` millimetres.

    Lines break on whitespace; explicit newlines start a new line. A single
    word wider than the line is split by character. Whitespace-only input
    yields no lines.
    """
    if not text or not text.strip():
        return []

    lines: List[str] = []
    for paragraph in text.splitlines():
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if measure(candidate, style) <= width:
                current = candidate
                continue
            if current:
                lines.append(current)
                current = ""
            if measure(word, style) <= width:
                current = word
            else:
                pieces = _split_long_word(word, width, style)
                lines.extend(pieces[:-1])
                current = pieces[-1]
        if current:
            lines.append(current)

    # Leading/trailing blank paragraphs carry no content
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return lines


class AwardLayout:
    """Single-pass layout of one award. Use `render_award` instead of this directly."""

    def __init__(self, award: AwardDocument):
        self.award = award
        self.pages: List[Page] = []
        self.y = TOP_MARGIN
        self._new_page()

    # -- cursor helpers -------------------------------------------------

    def _new_page(self):
        self.pages.append(Page(number=len(self.pages) + 1))
        self.y = TOP_MARGIN

    @property
    def _at_page_top(self) -> bool:
        return self.y <= TOP_MARGIN

    def _break_if_below(self, threshold: float):
        if self.y > threshold:
            self._new_page()

    def _place(self, text: str, x: float, style: TextStyle, advance: float):
        self.pages[-1].placements.append(Placement(text, x, self.y, style))
        self.y += advance

    def _centered(self, text: str, style: TextStyle, advance: float):
        self._place(text, PAGE_WIDTH / 2, style, advance)

    def _flow(self, lines: List[str], x: float, style: TextStyle = BODY):
        """Place wrapped lines, continuing on a new page when the bottom is reached."""
        for line in lines:
            if self.y > PAGE_BOTTOM_Y:
                self._new_page()
            self._place(line, x, style, LINE_HEIGHT)

    # -- sections -------------------------------------------------------

    def _header(self):
        award = self.award
        self._centered(award.document_type.document_title, TITLE, 10)
        self._centered(f"Case ID: {award.case_id}", SUBTITLE, 6)
        self._centered(f"Resolution Method: {award.resolution_type.label}", SUBTITLE, 15)

    def _party(self, role: str, name: str, advocate: Optional[AdvocateInfo]):
        self._place(f"{role}: {name}", MARGIN, BODY, 6)
        if advocate is not None:
            self._place(f"{role}'s Advocate: {advocate.name}", MARGIN + INDENT, BODY, 5)
            self._place(f"Contact: {advocate.phone}", MARGIN + INDENT, BODY, 8)
        else:
            self.y += 6

    def _parties(self):
        award = self.award
        self._place("PARTIES INVOLVED:", MARGIN, SECTION_HEADING, HEADING_GAP)
        self._party("Applicant", award.applicant_name, award.applicant_advocate)
        self._party("Respondent", award.respondent_name, award.respondent_advocate)

    def _signer(self):
        self._place(self.award.document_type.signer_heading, MARGIN, HEADING, 6)
        self._place(self.award.signer_name, MARGIN, BODY, 10)

    def _proceedings(self):
        award = self.award
        self._place("PROCEEDINGS SUMMARY:", MARGIN, HEADING, HEADING_GAP)
        self._place(f"Number of Meetings Held: {award.meetings_count}", MARGIN, BODY, 6)
        self._place(f"Final Hearing Date: {format_date(award.issued_at)}", MARGIN, BODY, 10)

    def _documents(self):
        documents = self.award.documents_submitted
        if not documents:
            return

        self._place("DOCUMENTS SUBMITTED:", MARGIN, HEADING, HEADING_GAP)
        description_x = MARGIN + 2 * INDENT
        for index, entry in enumerate(documents, start=1):
            description = wrap_text(entry.description or "", PAGE_WIDTH - MARGIN - description_x)
            height = LINE_HEIGHT * (1 + len(description))

            self._break_if_below(ENTRY_BREAK_Y)
            # Entry and description stay together unless they cannot fit any page
            if self.y + height > PAGE_BOTTOM_Y + LINE_HEIGHT and not self._at_page_top:
                self._new_page()

            self._place(f"{index}. {entry.document_name} (by {entry.submitted_by})",
                        MARGIN + INDENT, BODY, LINE_HEIGHT)
            self._flow(description, description_x)
            self.y += 3

        self._break_if_below(ENTRY_BREAK_Y)
        self.y += 5

    def _long_section(self, heading: str, text: str, gap_after: float = SECTION_GAP):
        self._break_if_below(SECTION_BREAK_Y)
        self._place(heading, MARGIN, HEADING, HEADING_GAP)
        self._flow(wrap_text(text, USABLE_WIDTH), MARGIN)
        self.y += gap_after

    def _signature(self):
        self._break_if_below(SECTION_BREAK_Y)
        self._place("DIGITALLY SIGNED BY:", MARGIN, HEADING, HEADING_GAP)
        self._place(self.award.signer_name, MARGIN, BODY, 6)
        self._place(f"Date: {format_date(self.award.issued_at)}", MARGIN, BODY, 15)

    def _footer(self):
        self._break_if_below(SECTION_BREAK_Y)
        self._centered(FOOTER_TEXT, FOOTER, LINE_HEIGHT)

    def run(self) -> List[Page]:
        self._header()
        self._parties()
        self._signer()
        self._proceedings()
        self._documents()
        self._long_section("RESOLUTION SUMMARY:", self.award.resolution_summary)
        self._long_section("OUTCOMES:", self.award.outcomes)
        self._long_section("TERMS AND CONDITIONS:", self.award.terms_and_conditions, gap_after=15)
        self._signature()
        self._footer()
        return self.pages


def render_award(award: AwardDocument) -> List[Page]:
    """
    Lay out an award / report document.

    Always returns at least one page; long text flows onto as many pages as
    needed.
    """
    if not isinstance(award, AwardDocument):
        raise TypeError(f"render_award expects AwardDocument, got {type(award).__name__}")
    return AwardLayout(award).run()
