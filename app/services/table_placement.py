"""
Table placement engine.

Maps flat content indices onto (table, row, column) cells. Tables are
created lazily on the first index that lands in them and reused for every
later index of the same range.

Where a table lives:
  - the first table config lives in the default header if index 0 is part
    of it,
  - the last table config lives in the default footer if it ends on the
    last content index,
  - every other table lives in the body, in config order.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from docx.document import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Twips
from docx.table import Table
from docx.text.paragraph import Paragraph

from app.models.schemas import Style, TableConfig, TextAlign
from app.services.layout import body_section
from app.services.styling import apply_style

logger = logging.getLogger(__name__)

# long side of an A4 page minus its borders, in twips
PAGE_LONG_SIDE_WITH_BORDER = 13300

TABLE_WIDTH = PAGE_LONG_SIDE_WITH_BORDER // 2
TABLE_CELL_MARGIN = 80

# children of w:tblPr that must come after w:tblCellMar
_CELL_MAR_SUCCESSORS = ("w:tblLook", "w:tblCaption", "w:tblDescription", "w:tblPrChange")


def find_table_config(
    table_configs: Sequence[TableConfig], index: int
) -> Optional[Tuple[int, TableConfig]]:
    """
    Return ``(position in table_configs, config)`` of the table containing
    the index, or None.

    Linear scan; configs never overlap, so the first hit is the only one.
    """
    for position, config in enumerate(table_configs):
        if config.contains(index):
            return position, config
    return None


def cell_coordinates(config: TableConfig, index: int) -> Tuple[int, int]:
    """Row-major ``(row, column)`` of an index inside its table."""
    offset = index - config.start_index
    return offset // config.num_columns, offset % config.num_columns


def table_alignment(style: Optional[Style]):
    if style is None:
        return WD_TABLE_ALIGNMENT.CENTER
    if style.text_align == TextAlign.LEFT:
        return WD_TABLE_ALIGNMENT.LEFT
    if style.text_align == TextAlign.RIGHT:
        return WD_TABLE_ALIGNMENT.RIGHT
    return WD_TABLE_ALIGNMENT.CENTER


def apply_table_style(table: Table, style: Optional[Style], width: int = TABLE_WIDTH) -> Table:
    """Set alignment (from the style), cell margins and a fixed width in twips."""
    if style is None or table is None:
        return table

    table.alignment = table_alignment(style)

    tbl_pr = table._tbl.tblPr

    cell_mar = tbl_pr.find(qn("w:tblCellMar"))
    if cell_mar is None:
        cell_mar = OxmlElement("w:tblCellMar")
        tbl_pr.insert_element_before(cell_mar, *_CELL_MAR_SUCCESSORS)
    for side in ("top", "left", "bottom", "right"):
        margin = cell_mar.find(qn(f"w:{side}"))
        if margin is None:
            margin = OxmlElement(f"w:{side}")
            cell_mar.append(margin)
        margin.set(qn("w:w"), str(TABLE_CELL_MARGIN))
        margin.set(qn("w:type"), "dxa")

    tbl_w = tbl_pr.find(qn("w:tblW"))
    if tbl_w is None:
        tbl_w = OxmlElement("w:tblW")
        tbl_pr.insert_element_before(
            tbl_w, "w:jc", "w:tblCellSpacing", "w:tblInd", "w:tblBorders", "w:shd",
            "w:tblLayout", "w:tblCellMar", *_CELL_MAR_SUCCESSORS,
        )
    tbl_w.set(qn("w:w"), str(width))
    tbl_w.set(qn("w:type"), "dxa")

    return table


class TablePlacement:
    """
    Placement session for one assembly run.

    Owns the only state that has to survive between indices: whether a
    table was put into the header, which shifts the position of every body
    table by one.
    """

    def __init__(self, document: Document, table_configs: Sequence[TableConfig]) -> None:
        self.document = document
        self.table_configs: List[TableConfig] = list(table_configs)
        self.has_header_table = False

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_table_config(self, index: int) -> Optional[Tuple[int, TableConfig]]:
        return find_table_config(self.table_configs, index)

    def is_table_index(self, index: int) -> bool:
        return self.find_table_config(index) is not None

    # ------------------------------------------------------------------
    # Paragraph placement
    # ------------------------------------------------------------------

    def create_table_paragraph(
        self, index: int, content_size: int, style: Optional[Style]
    ) -> Optional[Paragraph]:
        """
        Return the paragraph of the cell the index maps to.

        Creates the table on first use. Returns None (and logs a warning)
        if the index is not inside any table.
        """
        match = self.find_table_config(index)
        table = None
        if match is not None:
            position, config = match
            table = self._get_current_table(position, config, index, content_size, style)

        if table is None:
            logger.warning(
                "Failed to create table paragraph. Index %d is not inside a table.", index
            )
            return None

        row, col = cell_coordinates(config, index)
        if row >= len(table.rows) or col >= len(table.columns):
            logger.warning(
                "Failed to create table paragraph. Cell (%d, %d) of index %d is outside its table.",
                row, col, index,
            )
            return None

        cell = table.cell(row, col)
        return cell.paragraphs[0] if cell.paragraphs else cell.add_paragraph()

    def fill_table_cell(
        self,
        paragraph: Paragraph,
        text: str,
        style: Optional[Style],
        tab_stops_by_font_size: bool = False,
    ) -> Paragraph:
        """Write plain text into a new run of the cell paragraph and style it."""
        paragraph.add_run(text)
        apply_style(paragraph, style, tab_stops_by_font_size)
        return paragraph

    # ------------------------------------------------------------------
    # Table resolution
    # ------------------------------------------------------------------

    def _get_current_table(
        self,
        position: int,
        config: TableConfig,
        index: int,
        content_size: int,
        style: Optional[Style],
    ) -> Optional[Table]:
        table = None

        if position == 0:
            table = self._table_from_header(config, style, create_new=index == 0)

        if table is None and position == len(self.table_configs) - 1:
            table = self._table_from_footer(
                config, style, create_new=config.end_index == content_size - 1
            )

        if table is None:
            table = self._table_from_body(position, config, style)

        return table

    def _table_from_header(
        self, config: TableConfig, style: Optional[Style], create_new: bool
    ) -> Optional[Table]:
        header = body_section(self.document).header
        if not header.is_linked_to_previous and header.tables:
            return header.tables[0]
        if not create_new:
            return None

        header.is_linked_to_previous = False
        table = header.add_table(config.num_rows, config.num_columns, Twips(TABLE_WIDTH))
        self.has_header_table = True
        logger.debug("Created %dx%d header table", config.num_rows, config.num_columns)
        return apply_table_style(table, style)

    def _table_from_footer(
        self, config: TableConfig, style: Optional[Style], create_new: bool
    ) -> Optional[Table]:
        footer = body_section(self.document).footer
        if not footer.is_linked_to_previous and footer.tables:
            return footer.tables[0]
        if not create_new:
            return None

        footer.is_linked_to_previous = False
        table = footer.add_table(config.num_rows, config.num_columns, Twips(TABLE_WIDTH))
        logger.debug("Created %dx%d footer table", config.num_rows, config.num_columns)
        return apply_table_style(table, style)

    def _table_from_body(
        self, position: int, config: TableConfig, style: Optional[Style]
    ) -> Table:
        body_position = position - 1 if self.has_header_table else position
        tables = self.document.tables
        if 0 <= body_position < len(tables):
            return tables[body_position]

        table = self.document.add_table(rows=config.num_rows, cols=config.num_columns)
        logger.debug("Created %dx%d body table", config.num_rows, config.num_columns)
        return apply_table_style(table, style)
