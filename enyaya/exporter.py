"""
Award PDF Exporter
==================

Serialize laid-out award pages to PDF bytes with reportlab.
"""

from io import BytesIO
from typing import List

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from .layout import PAGE_HEIGHT, Page, render_award
from .schemas import AwardDocument


def build_award_pdf(pages: List[Page], title: str = "", author: str = "eNyaya Resolve") -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    if title:
        c.setTitle(title)
    c.setAuthor(author)

    for page in pages:
        for placement in page.placements:
            style = placement.style
            c.setFont(style.font, style.size)
            c.setFillGray(style.gray)
            x = placement.x * mm
            y = (PAGE_HEIGHT - placement.y) * mm
            if style.align == "center":
                c.drawCentredString(x, y, placement.text)
            else:
                c.drawString(x, y, placement.text)
        c.showPage()

    c.save()
    buf.seek(0)
    return buf.read()


def render_award_pdf(award: AwardDocument) -> bytes:
    """Lay out and serialize an award in one call."""
    pages = render_award(award)
    return build_award_pdf(pages, title=f"{award.document_type.document_title} - {award.case_id}")
