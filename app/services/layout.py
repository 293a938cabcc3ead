"""
Page and section configuration.

All page geometry lives in one section-properties block (``w:sectPr``) at
the end of the document body. A copy of that block can be attached to a
paragraph to end a section there; this is how single column lines are kept
above a multi-column body.
"""
from __future__ import annotations

import copy
import logging
from typing import List, Optional

from docx.document import Document
from docx.enum.section import WD_ORIENT, WD_SECTION_START
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.section import Section
from docx.shared import Twips
from docx.text.paragraph import Paragraph

logger = logging.getLogger(__name__)

# A4 in twips
PAGE_LONG_SIDE = 842 * 20
PAGE_SHORT_SIDE = 595 * 20

MINIMUM_MARGIN_TOP = 240
MINIMUM_MARGIN_BOTTOM = 240

# children of w:sectPr that must come after w:cols
_COLS_SUCCESSORS = (
    "w:formProt",
    "w:vAlign",
    "w:noEndnote",
    "w:titlePg",
    "w:textDirection",
    "w:bidi",
    "w:rtlGutter",
    "w:docGrid",
    "w:printerSettings",
    "w:sectPrChange",
)


def body_section(document: Document) -> Section:
    """
    Return the section described by the body-level ``w:sectPr``.

    Sections ended inside the body (see separate_section) come first, so
    the document-wide block is always the last one. Its start type is set
    to continuous so a section break never forces a new page.
    """
    section = document.sections[-1]
    section.start_type = WD_SECTION_START.CONTINUOUS
    return section


def set_orientation(document: Document, landscape: bool) -> Section:
    """Swap the A4 page dimensions according to the orientation."""
    section = body_section(document)
    if landscape:
        section.orientation = WD_ORIENT.LANDSCAPE
        section.page_width = Twips(PAGE_LONG_SIDE)
        section.page_height = Twips(PAGE_SHORT_SIDE)
    else:
        section.orientation = WD_ORIENT.PORTRAIT
        section.page_width = Twips(PAGE_SHORT_SIDE)
        section.page_height = Twips(PAGE_LONG_SIDE)
    return section


def set_margins(
    document: Document,
    top: Optional[int] = None,
    right: Optional[int] = None,
    bottom: Optional[int] = None,
    left: Optional[int] = None,
) -> Section:
    """Set page margins in twips. Sides passed as None are left untouched."""
    section = body_section(document)
    if top is not None:
        section.top_margin = Twips(top)
    if right is not None:
        section.right_margin = Twips(right)
    if bottom is not None:
        section.bottom_margin = Twips(bottom)
    if left is not None:
        section.left_margin = Twips(left)
    return section


def set_columns(document: Document, num_columns: int) -> List:
    """
    Append one ``w:cols`` descriptor per column count from 1 to num_columns.

    Any existing descriptor (the default template ships one) is removed
    first, so for num_columns=2 the section declares exactly ``num=1``
    followed by ``num=2``.
    """
    sect_pr = body_section(document)._sectPr
    for cols in sect_pr.findall(qn("w:cols")):
        sect_pr.remove(cols)

    added = []
    for num in range(1, num_columns + 1):
        cols = OxmlElement("w:cols")
        cols.set(qn("w:num"), str(num))
        sect_pr.insert_element_before(cols, *_COLS_SUCCESSORS)
        added.append(cols)
    return added


def separate_section(document: Document, paragraph: Optional[Paragraph]) -> Optional[Paragraph]:
    """
    End a section at the given paragraph.

    A copy of the body section properties is placed in the paragraph's
    ``w:pPr``; everything up to and including the paragraph belongs to
    that section.
    """
    if paragraph is None:
        return None

    sect_pr = copy.deepcopy(body_section(document)._sectPr)
    p_pr = paragraph._p.get_or_add_pPr()
    for existing in p_pr.findall(qn("w:sectPr")):
        p_pr.remove(existing)
    p_pr.insert_element_before(sect_pr, "w:pPrChange")
    logger.debug("Section break placed after single column lines")
    return paragraph
