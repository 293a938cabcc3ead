"""
Document assembly engine.

Turns a flat list of styled paragraphs into a .docx document:

  - index 0 is the header, the last index is the footer (both are skipped
    when their text is blank),
  - indices covered by a TableConfig are placed into table cells,
  - everything else becomes a body paragraph.

When the page has more than one column, the first ``num_single_column_lines``
body lines stay at full width: the paragraph of the last such line ends a
continuous section, and the column descriptors are written to the section
that follows.

Typical use::

    builder = DocumentBuilder(content, "report.docx", num_columns=2,
                              num_single_column_lines=1)
    path = builder.build().write_docx_file()
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Union

from docx import Document
from docx.document import Document as DocxDocument
from docx.shared import RGBColor
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from app.config import settings
from app.exceptions import DocumentWriteError, InvalidContentError
from app.models.schemas import BasicParagraph, Style, TableConfig
from app.services import layout
from app.services.pictures import PictureUtils, is_picture
from app.services.styling import apply_style
from app.services.table_placement import (
    TablePlacement,
    cell_coordinates,
    find_table_config,
)
from app.utils.helpers import is_blank, prepend_date_time

logger = logging.getLogger(__name__)

# Marker in paragraph text that is replaced by a real tab
TAB_SYMBOL = "\\t"

# Empty lines lose their font size, so they get an invisible placeholder
EMPTY_LINE_PLACEHOLDER = "_"
EMPTY_LINE_PLACEHOLDER_COLOR = "FFFFFF"

PICTURE_IN_TABLE_NOTE = "(Cannot add picture inside table)"


# ---------------------------------------------------------------------------
# Index classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HeaderSlot:
    """Index 0 with non-blank text."""


@dataclass(frozen=True)
class FooterSlot:
    """Last index with non-blank text."""


@dataclass(frozen=True)
class BodySlot:
    """Ordinary body paragraph."""


@dataclass(frozen=True)
class TableCellSlot:
    """Cell ``(row, column)`` of the table built from ``table_configs[table_number]``."""

    table_number: int
    row: int
    column: int


Slot = Union[HeaderSlot, FooterSlot, BodySlot, TableCellSlot]


def classify_index(
    index: int,
    content_size: int,
    text: Optional[str],
    table_configs: Sequence[TableConfig] = (),
) -> Optional[Slot]:
    """
    Decide where the content entry at ``index`` goes.

    Returns None when nothing should be emitted (blank header or footer).
    Table ranges take precedence over the header and footer positions.
    """
    match = find_table_config(table_configs, index)
    if match is not None:
        table_number, config = match
        row, column = cell_coordinates(config, index)
        return TableCellSlot(table_number, row, column)

    if index == 0:
        return None if is_blank(text) else HeaderSlot()

    if index == content_size - 1:
        return None if is_blank(text) else FooterSlot()

    return BodySlot()


def add_plain_text_to_run(run: Run, text: str) -> Run:
    """
    Add text to a run, replacing every TAB_SYMBOL with a real tab.

    Empty trailing segments are dropped, so any number of trailing markers
    results in a single trailing tab.
    """
    segments = text.split(TAB_SYMBOL)
    while segments and segments[-1] == "":
        segments.pop()

    for i, segment in enumerate(segments):
        run.add_text(segment)
        if i != len(segments) - 1:
            run.add_tab()

    if text.endswith(TAB_SYMBOL):
        run.add_tab()

    return run


def read_docx_file(path: str) -> DocxDocument:
    """
    Open an existing .docx and remove its body content.

    Headers, footers, styles and the final section properties survive.
    Returns a new empty document if the file cannot be read.
    """
    logger.info("Starting to read .docx file...")
    try:
        document = Document(path)
    except Exception as exc:
        logger.error(
            "Failed to read .docx file %s. Returning an empty document instead: %s", path, exc
        )
        return Document()

    document.element.body.clear_content()
    return document


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class DocumentBuilder:
    """Builds one .docx document from a content list. Not reusable across runs."""

    def __init__(
        self,
        content: Sequence[BasicParagraph],
        docx_file_name: str,
        num_columns: int = 1,
        num_single_column_lines: int = 0,
        landscape: bool = False,
        pictures: Optional[Mapping[str, bytes]] = None,
        table_configs: Optional[Sequence[TableConfig]] = None,
        output_dir: Optional[str] = None,
        template_path: Optional[str] = None,
    ) -> None:
        self.content: List[Optional[BasicParagraph]] = list(content)
        self.docx_file_name = prepend_date_time(docx_file_name)
        self.num_columns = num_columns
        self.num_single_column_lines = num_single_column_lines
        self.landscape = landscape
        self.picture_utils = PictureUtils(pictures)
        self.table_configs: List[TableConfig] = list(table_configs or [])
        self.output_dir = output_dir or settings.DOCX_DIR

        template_path = template_path or settings.DOCX_TEMPLATE
        self.document: DocxDocument = read_docx_file(template_path) if template_path else Document()

        self.table_placement: Optional[TablePlacement] = (
            TablePlacement(self.document, self.table_configs) if self.table_configs else None
        )
        self.tab_stops_by_font_size = False
        self.section_break_paragraph: Optional[Paragraph] = None

    # ------------------------------------------------------------------
    # Build steps
    # ------------------------------------------------------------------

    def build(self) -> "DocumentBuilder":
        """Configure the page, add all content, then configure columns."""
        self.set_orientation()
        self.set_document_margins(layout.MINIMUM_MARGIN_TOP, None, layout.MINIMUM_MARGIN_BOTTOM, None)
        self.set_tab_stops_by_font_size(True)

        self.add_content()

        # must run after add_content(), which may end a section
        self.set_document_columns()

        return self

    def set_orientation(self) -> "DocumentBuilder":
        logger.info("Setting orientation...")
        layout.set_orientation(self.document, self.landscape)
        return self

    def set_document_margins(
        self,
        top: Optional[int],
        right: Optional[int],
        bottom: Optional[int],
        left: Optional[int],
    ) -> "DocumentBuilder":
        """Set page margins in twips; None leaves a side at its default."""
        logger.info("Setting document margins...")
        layout.set_margins(self.document, top=top, right=right, bottom=bottom, left=left)
        return self

    def set_tab_stops_by_font_size(self, enabled: bool) -> "DocumentBuilder":
        logger.info("%s tab stops by font size...", "Setting" if enabled else "Not setting")
        self.tab_stops_by_font_size = enabled
        return self

    def set_document_columns(self) -> "DocumentBuilder":
        logger.info("Setting document columns...")
        layout.set_columns(self.document, self.num_columns)
        return self

    def add_content(self) -> "DocumentBuilder":
        """
        Add every content entry in order.

        An empty paragraph is inserted right before index
        ``num_single_column_lines + 1`` to even out the column break. With
        several columns, the paragraph at ``num_single_column_lines`` ends
        the full-width section.
        """
        logger.info("Adding content...")

        num_paragraphs = len(self.content)
        if num_paragraphs == 0:
            logger.warning("Not adding any paragraphs because content list is empty.")
            return self

        last_single_column_line = None

        for index in range(num_paragraphs):
            if index == self.num_single_column_lines + 1:
                self.add_empty_paragraph()

            paragraph = self.add_paragraph(index)

            if (
                index == self.num_single_column_lines
                and self.num_columns > 1
                and self.num_single_column_lines >= 1
            ):
                last_single_column_line = paragraph

        self.section_break_paragraph = layout.separate_section(self.document, last_single_column_line)
        return self

    # ------------------------------------------------------------------
    # Paragraphs
    # ------------------------------------------------------------------

    def add_paragraph(self, index: int) -> Optional[Paragraph]:
        """
        Add the content entry at ``index``.

        Returns:
            The paragraph written to, or None if the entry was skipped.

        Raises:
            InvalidContentError: The entry at ``index`` is None.
        """
        basic_paragraph = self.content[index]
        if basic_paragraph is None:
            raise InvalidContentError(
                f"Failed to add paragraph. Content entry at index {index} cannot be None.",
                index=index,
            )

        paragraph = self.create_paragraph_by_content_index(index, basic_paragraph.style)
        if paragraph is None:
            return None

        if is_blank(basic_paragraph.text):
            self.add_empty_paragraph(paragraph, basic_paragraph.style)
        else:
            self.add_text(paragraph, basic_paragraph, index)
            self.apply_style(paragraph, basic_paragraph.style)

        return paragraph

    def create_paragraph_by_content_index(self, index: int, style: Optional[Style]) -> Optional[Paragraph]:
        """Create (or, for table cells, look up) the paragraph for an index."""
        entry = self.content[index]
        slot = classify_index(
            index, len(self.content), entry.text if entry else None, self.table_configs
        )

        if isinstance(slot, TableCellSlot):
            return self.table_placement.create_table_paragraph(index, len(self.content), style)

        if isinstance(slot, HeaderSlot):
            header = layout.body_section(self.document).header
            header.is_linked_to_previous = False
            return _first_unused_paragraph(header)

        if isinstance(slot, FooterSlot):
            footer = layout.body_section(self.document).footer
            footer.is_linked_to_previous = False
            return _first_unused_paragraph(footer)

        if isinstance(slot, BodySlot):
            return self.document.add_paragraph()

        return None

    def add_empty_paragraph(
        self, paragraph: Optional[Paragraph] = None, style: Optional[Style] = None
    ) -> Paragraph:
        """
        Make a visually empty line that keeps its font size.

        The first run holds a placeholder in the page color, the second run
        one unstyled space.
        """
        if paragraph is None:
            paragraph = self.document.add_paragraph()

        filler = paragraph.add_run()
        self.apply_style(paragraph, style or Style.default())

        filler.add_text(EMPTY_LINE_PLACEHOLDER)
        filler.font.color.rgb = RGBColor.from_string(EMPTY_LINE_PLACEHOLDER_COLOR)

        paragraph.add_run(" ")
        return paragraph

    def add_text(self, paragraph: Paragraph, basic_paragraph: BasicParagraph, index: int) -> Paragraph:
        """Write the entry's text, picture or table cell content into the paragraph."""
        text = basic_paragraph.text
        is_table_index = (
            self.table_placement is not None and self.table_placement.is_table_index(index)
        )

        if is_table_index and is_picture(text):
            logger.warning(
                "Failed to add picture %s. Cannot add picture inside table. Adding plain text instead.",
                text,
            )
            add_plain_text_to_run(paragraph.add_run(), text + PICTURE_IN_TABLE_NOTE)
            return paragraph

        if is_picture(text):
            self.picture_utils.add_picture(paragraph.add_run(), text, self.num_columns)
        elif is_table_index:
            self.table_placement.fill_table_cell(
                paragraph, text, basic_paragraph.style, self.tab_stops_by_font_size
            )
        else:
            add_plain_text_to_run(paragraph.add_run(), text)

        return paragraph

    def apply_style(self, paragraph: Optional[Paragraph], style: Optional[Style]) -> Optional[Paragraph]:
        return apply_style(paragraph, style, self.tab_stops_by_font_size)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def write_docx_file(self) -> str:
        """
        Save the document to ``output_dir/<date time>_<file name>``.

        Returns:
            Path of the written file.

        Raises:
            DocumentWriteError: The file could not be written or does not
                exist afterwards.
        """
        logger.info("Writing .docx file...")

        path = os.path.join(self.output_dir, self.docx_file_name)
        try:
            os.makedirs(self.output_dir, exist_ok=True)
            self.document.save(path)
        except OSError as exc:
            logger.error("Failed to write .docx file %s: %s", path, exc)
            raise DocumentWriteError(path, str(exc)) from exc

        if not os.path.exists(path):
            raise DocumentWriteError(path, "file does not exist after writing")

        logger.info("Finished writing .docx file")
        return path


def _first_unused_paragraph(container) -> Paragraph:
    """First paragraph of a header/footer if it is still empty, else a new one."""
    paragraphs = container.paragraphs
    if paragraphs and not paragraphs[0].runs:
        return paragraphs[0]
    return container.add_paragraph()
