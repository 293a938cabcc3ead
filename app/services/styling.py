"""
Run and paragraph styling.

apply_style() is idempotent: applying the same Style twice leaves the runs
and paragraph properties exactly as a single application would.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_BREAK, WD_UNDERLINE
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor, Twips
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from app.models.schemas import BreakType, Style, TextAlign

logger = logging.getLogger(__name__)

# Paragraph spacing after, in twips. Zero is ignored by some renderers.
NO_LINE_SPACE = 1

# Tab stops are placed at multiples of TAB_STOP_UNIT * font size (twips).
TAB_STOP_UNIT = 36
NUM_TAB_STOPS = 17

ALIGNMENTS = {
    TextAlign.LEFT: WD_ALIGN_PARAGRAPH.LEFT,
    TextAlign.CENTER: WD_ALIGN_PARAGRAPH.CENTER,
    TextAlign.RIGHT: WD_ALIGN_PARAGRAPH.RIGHT,
    TextAlign.BOTH: WD_ALIGN_PARAGRAPH.JUSTIFY,
    TextAlign.DISTRIBUTE: WD_ALIGN_PARAGRAPH.DISTRIBUTE,
    TextAlign.MEDIUM_KASHIDA: WD_ALIGN_PARAGRAPH.JUSTIFY_MED,
    TextAlign.HIGH_KASHIDA: WD_ALIGN_PARAGRAPH.JUSTIFY_HI,
    TextAlign.LOW_KASHIDA: WD_ALIGN_PARAGRAPH.JUSTIFY_LOW,
    TextAlign.THAI_DISTRIBUTE: WD_ALIGN_PARAGRAPH.THAI_JUSTIFY,
}

BREAKS = {
    BreakType.PAGE: WD_BREAK.PAGE,
    BreakType.COLUMN: WD_BREAK.COLUMN,
    BreakType.TEXT_WRAPPING: WD_BREAK.LINE,
}

# value of the w:type attribute python-docx writes for each break
_BREAK_XML_TYPES = {
    BreakType.PAGE: "page",
    BreakType.COLUMN: "column",
    BreakType.TEXT_WRAPPING: None,
}


def tab_stop_positions(font_size: int) -> List[int]:
    """Tab stop positions in twips, proportional to the given font size."""
    return [(i + 1) * TAB_STOP_UNIT * font_size for i in range(NUM_TAB_STOPS)]


def style_run(run: Run, style: Style) -> Run:
    """Apply the character-level part of a Style to a single run."""
    font = run.font
    font.size = Pt(style.font_size)
    font.name = style.font_family
    font.color.rgb = RGBColor.from_string(style.hex_color)
    font.bold = style.bold
    font.italic = style.italic

    if style.break_type is not None and not _has_break(run, style.break_type):
        run.add_break(BREAKS[style.break_type])

    if style.underline:
        font.underline = WD_UNDERLINE.SINGLE

    return run


def apply_style(
    paragraph: Optional[Paragraph],
    style: Optional[Style],
    tab_stops_by_font_size: bool = False,
) -> Optional[Paragraph]:
    """
    Apply a Style to every run of a paragraph plus its paragraph properties.

    Args:
        paragraph: Target paragraph; nothing happens if None.
        style: Style to apply; nothing happens if None.
        tab_stops_by_font_size: Replace the paragraph's tab stops with
            NUM_TAB_STOPS stops spaced proportionally to the font size.

    Returns:
        The same paragraph.
    """
    if paragraph is None or style is None:
        return paragraph

    for run in paragraph.runs:
        style_run(run, style)

    paragraph.alignment = ALIGNMENTS[style.text_align]
    paragraph.paragraph_format.space_after = Twips(NO_LINE_SPACE)

    if tab_stops_by_font_size:
        set_tab_stops_by_font_size(paragraph, style.font_size)

    return paragraph


def set_tab_stops_by_font_size(paragraph: Paragraph, font_size: int) -> None:
    tab_stops = paragraph.paragraph_format.tab_stops
    tab_stops.clear_all()
    for position in tab_stop_positions(font_size):
        tab_stops.add_tab_stop(Twips(position))


def _has_break(run: Run, break_type: BreakType) -> bool:
    expected = _BREAK_XML_TYPES[break_type]
    return any(br.get(qn("w:type")) == expected for br in run._r.findall(qn("w:br")))
