"""
Award Layout Tests
==================

Tests for:
- Word wrapping against font metrics
- Pagination of long sections (never ends mid-heading)
- Advocate lines and their effect on vertical spacing
- Document-type headings
- Submitted-document entries kept together with their description
"""

import pytest
from datetime import datetime
from pathlib import Path

# Add parent to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from enyaya.db.models import DocumentType, ResolutionType
from enyaya.layout import (
    BODY,
    INDENT,
    MARGIN,
    PAGE_BOTTOM_Y,
    PAGE_WIDTH,
    SECTION_BREAK_Y,
    USABLE_WIDTH,
    FOOTER_TEXT,
    format_date,
    measure,
    render_award,
    wrap_text,
)
from enyaya.schemas import AdvocateInfo, AwardDocument, SubmittedDocumentEntry


SECTION_HEADINGS = (
    "RESOLUTION SUMMARY:",
    "OUTCOMES:",
    "TERMS AND CONDITIONS:",
    "DIGITALLY SIGNED BY:",
)

LOREM = (
    "The parties appeared before the tribunal and presented their respective "
    "claims regarding the delayed delivery of goods under the supply contract. "
)


def _award(**overrides) -> AwardDocument:
    data = dict(
        case_id="ODR/2026/123456",
        applicant_name="Asha Verma",
        respondent_name="Bharat Traders",
        resolution_type=ResolutionType.ARBITRATION,
        document_type=DocumentType.ARBITRATION_AWARD,
        signer_name="Dr. Meera Iyer",
        meetings_count=2,
        resolution_summary="The dispute was resolved by award.",
        outcomes="Respondent pays INR 50,000 within 30 days.",
        terms_and_conditions="Payment by bank transfer.",
        issued_at=datetime(2026, 3, 5, 14, 30),
    )
    data.update(overrides)
    return AwardDocument(**data)


def _placements(pages):
    """All placements in reading order as (page_number, placement)."""
    return [(page.number, p) for page in pages for p in page.placements]


def _find(pages, text):
    for number, p in _placements(pages):
        if p.text == text:
            return number, p
    raise AssertionError(f"{text!r} not placed")


def _all_texts(pages):
    return [p.text for _, p in _placements(pages)]


# =============================================================================
# Wrapping
# =============================================================================

class TestWrapText:
    """Tests for wrap_text"""

    def test_empty_and_blank_yield_no_lines(self):
        assert wrap_text("", USABLE_WIDTH) == []
        assert wrap_text("   \n\t ", USABLE_WIDTH) == []

    def test_lines_fit_width(self):
        lines = wrap_text(LOREM * 10, USABLE_WIDTH)
        assert len(lines) > 1
        for line in lines:
            assert measure(line, BODY) <= USABLE_WIDTH

    def test_words_preserved_in_order(self):
        text = LOREM * 4
        lines = wrap_text(text, 60)
        assert " ".join(lines).split() == text.split()

    def test_newline_forces_break(self):
        lines = wrap_text("first line\nsecond line", USABLE_WIDTH)
        assert lines == ["first line", "second line"]

    def test_inner_blank_line_kept(self):
        lines = wrap_text("\n\npara one\n\npara two\n\n", USABLE_WIDTH)
        assert lines == ["para one", "", "para two"]

    def test_overlong_word_is_split(self):
        word = "x" * 400
        lines = wrap_text(word, 50)
        assert len(lines) > 1
        assert "".join(lines) == word
        for line in lines:
            assert measure(line, BODY) <= 50


def test_format_date_day_month_year():
    assert format_date(datetime(2026, 3, 5)) == "5/3/2026"
    assert format_date(datetime(2026, 12, 25, 23, 59)) == "25/12/2026"


# =============================================================================
# Header & headings
# =============================================================================

class TestDocumentTypeHeadings:
    """Title and signer heading follow the document type"""

    def test_arbitration_award(self):
        pages = render_award(_award(document_type=DocumentType.ARBITRATION_AWARD))
        texts = _all_texts(pages)
        assert pages[0].placements[0].text == "ARBITRATION AWARD"
        assert "ARBITRATOR:" in texts
        assert "MEDIATOR:" not in texts

    def test_mediation_report(self):
        pages = render_award(_award(
            resolution_type=ResolutionType.MEDIATION,
            document_type=DocumentType.MEDIATION_REPORT,
        ))
        texts = _all_texts(pages)
        assert pages[0].placements[0].text == "MEDIATION REPORT"
        assert "MEDIATOR:" in texts
        assert "ARBITRATOR:" not in texts

    def test_header_lines(self):
        pages = render_award(_award(resolution_type=ResolutionType.LEGAL_AID))
        texts = pages[0].texts()
        assert texts[1] == "Case ID: ODR/2026/123456"
        assert texts[2] == "Resolution Method: Legal Aid"

    def test_title_is_centered(self):
        pages = render_award(_award())
        title = pages[0].placements[0]
        assert title.style.align == "center"
        assert title.x == PAGE_WIDTH / 2
        assert title.style.bold


# =============================================================================
# Parties
# =============================================================================

class TestAdvocates:
    """Advocate lines appear only when given and change vertical spacing"""

    @pytest.mark.parametrize("applicant_adv,respondent_adv", [
        (None, None),
        (AdvocateInfo(name="Adv. Rao", phone="9876543210"), None),
        (None, AdvocateInfo(name="Adv. Khan", phone="9123456780")),
        (AdvocateInfo(name="Adv. Rao", phone="9876543210"),
         AdvocateInfo(name="Adv. Khan", phone="9123456780")),
    ])
    def test_advocate_combinations(self, applicant_adv, respondent_adv):
        pages = render_award(_award(applicant_advocate=applicant_adv, respondent_advocate=respondent_adv))
        texts = _all_texts(pages)

        assert ("Applicant's Advocate: Adv. Rao" in texts) == (applicant_adv is not None)
        assert ("Respondent's Advocate: Adv. Khan" in texts) == (respondent_adv is not None)
        assert ("Contact: 9876543210" in texts) == (applicant_adv is not None)
        assert ("Contact: 9123456780" in texts) == (respondent_adv is not None)

    def test_advocate_lines_are_indented(self):
        pages = render_award(_award(applicant_advocate=AdvocateInfo(name="Adv. Rao", phone="1")))
        _, party = _find(pages, "Applicant: Asha Verma")
        _, advocate = _find(pages, "Applicant's Advocate: Adv. Rao")
        assert party.x == MARGIN
        assert advocate.x == MARGIN + INDENT

    def test_advocate_takes_more_vertical_space(self):
        without = render_award(_award())
        with_adv = render_award(_award(applicant_advocate=AdvocateInfo(name="Adv. Rao", phone="1")))

        def gap(pages):
            _, applicant = _find(pages, "Applicant: Asha Verma")
            _, respondent = _find(pages, "Respondent: Bharat Traders")
            return respondent.y - applicant.y

        assert gap(with_adv) > gap(without)


# =============================================================================
# Pagination
# =============================================================================

class TestPagination:
    """Layout always terminates and never strands a heading"""

    @pytest.mark.parametrize("length", [0, 1, 50, 500, 5000, 40000])
    def test_any_text_length_renders(self, length):
        text = ("word " * length).strip()
        pages = render_award(_award(
            resolution_summary=text,
            outcomes=text,
            terms_and_conditions=text,
        ))
        assert len(pages) >= 1
        assert [p.number for p in pages] == list(range(1, len(pages) + 1))

    def test_long_text_spans_pages(self):
        pages = render_award(_award(resolution_summary=LOREM * 80))
        assert len(pages) > 1

    def test_nothing_placed_below_bottom_limit(self):
        pages = render_award(_award(
            resolution_summary=LOREM * 60,
            outcomes=LOREM * 45,
            terms_and_conditions=LOREM * 30,
        ))
        for _, p in _placements(pages):
            assert p.y <= PAGE_BOTTOM_Y

    @pytest.mark.parametrize("repeat", [1, 20, 37, 41, 55, 80])
    def test_heading_has_room_for_content(self, repeat):
        pages = render_award(_award(
            resolution_summary=LOREM * repeat,
            outcomes=LOREM * (repeat // 2 + 1),
            terms_and_conditions=LOREM * 3,
        ))
        for page in pages:
            for index, p in enumerate(page.placements):
                if p.text not in SECTION_HEADINGS:
                    continue
                assert p.y <= SECTION_BREAK_Y
                # Heading is followed by its first content line on the same page
                assert index + 1 < len(page.placements)

    def test_empty_sections_still_have_headings(self):
        pages = render_award(_award(resolution_summary="", outcomes="", terms_and_conditions=""))
        texts = _all_texts(pages)
        for heading in SECTION_HEADINGS:
            assert heading in texts

    def test_footer_on_last_page(self):
        pages = render_award(_award(resolution_summary=LOREM * 80))
        assert pages[-1].placements[-1].text == FOOTER_TEXT


# =============================================================================
# Submitted documents
# =============================================================================

class TestSubmittedDocuments:
    """Numbered entries with wrapped descriptions"""

    def test_section_omitted_when_no_documents(self):
        pages = render_award(_award(documents_submitted=[]))
        assert "DOCUMENTS SUBMITTED:" not in _all_texts(pages)

    def test_entries_are_numbered(self):
        docs = [
            SubmittedDocumentEntry(submitted_by="Applicant", document_name="Invoice"),
            SubmittedDocumentEntry(submitted_by="Respondent", document_name="Delivery note"),
        ]
        texts = _all_texts(render_award(_award(documents_submitted=docs)))
        assert "1. Invoice (by Applicant)" in texts
        assert "2. Delivery note (by Respondent)" in texts

    def test_entry_stays_with_description(self):
        docs = [
            SubmittedDocumentEntry(
                submitted_by="Applicant",
                document_name=f"Exhibit {i}",
                description=LOREM * 2,
            )
            for i in range(40)
        ]
        pages = render_award(_award(documents_submitted=docs))
        assert len(pages) > 1

        entry_page = None
        description_x = MARGIN + 2 * INDENT
        for number, p in _placements(pages):
            if p.x == MARGIN + INDENT and p.text.split(".")[0].isdigit():
                entry_page = number
            elif p.x == description_x:
                assert number == entry_page

    def test_description_lines_fit(self):
        docs = [SubmittedDocumentEntry(submitted_by="A", document_name="Long", description=LOREM * 5)]
        pages = render_award(_award(documents_submitted=docs))
        description_x = MARGIN + 2 * INDENT
        lines = [p for _, p in _placements(pages) if p.x == description_x]
        assert len(lines) > 1
        for p in lines:
            assert p.x + measure(p.text, p.style) <= PAGE_WIDTH - MARGIN


# =============================================================================
# End to end
# =============================================================================

def test_complete_arbitration_award():
    award = _award(
        applicant_name="A",
        respondent_name="B",
        respondent_advocate=AdvocateInfo(name="C", phone="9999999999"),
        signer_name="Dr. X",
        meetings_count=3,
        resolution_summary="S",
        outcomes="O",
        terms_and_conditions="T",
        documents_submitted=[
            SubmittedDocumentEntry(submitted_by="A", document_name="Contract", description=LOREM * 2),
            SubmittedDocumentEntry(submitted_by="B", document_name="Reply"),
        ],
    )
    pages = render_award(award)
    texts = _all_texts(pages)

    assert texts[0] == "ARBITRATION AWARD"
    assert "Applicant: A" in texts
    assert not any(t.startswith("Applicant's Advocate") for t in texts)
    assert "Respondent's Advocate: C" in texts
    assert "Contact: 9999999999" in texts
    assert texts.index("ARBITRATOR:") + 1 == texts.index("Dr. X")
    assert "Number of Meetings Held: 3" in texts
    assert "Final Hearing Date: 5/3/2026" in texts
    assert "1. Contract (by A)" in texts
    assert "2. Reply (by B)" in texts
    description_lines = texts[texts.index("1. Contract (by A)") + 1:texts.index("2. Reply (by B)")]
    assert len(description_lines) > 1
    assert len([t for t in texts if t[:1].isdigit() and ". " in t and "(by " in t]) == 2
    assert "Date: 5/3/2026" in texts

    order = [texts.index(h) for h in ("PARTIES INVOLVED:", "ARBITRATOR:", "PROCEEDINGS SUMMARY:",
                                      "DOCUMENTS SUBMITTED:") + SECTION_HEADINGS]
    assert order == sorted(order)


def test_render_award_rejects_plain_dict():
    with pytest.raises(TypeError):
        render_award({"case_id": "ODR/2026/000001"})
