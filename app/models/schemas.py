"""
Pydantic schemas for request/response validation.

The content model (Style, BasicParagraph, TableConfig, DocumentWrapperCreate)
is validated here, at the HTTP boundary. The document builder itself assumes
these invariants already hold.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FILE_NAME_PATTERN = r"^[\w\-. ]+\.(docx|pdf)$"
HEX_COLOR_PATTERN = r"^([a-fA-F0-9]{6}|[a-fA-F0-9]{3})$"

MIN_FONT_SIZE = 8
MAX_NUM_COLUMNS = 3
MAX_SINGLE_COLUMN_LINES = 5


# Enums
class TextAlign(str, Enum):
    """Paragraph alignment values (ECMA-376 ``w:jc`` names)."""

    LEFT = "LEFT"
    CENTER = "CENTER"
    RIGHT = "RIGHT"
    BOTH = "BOTH"
    DISTRIBUTE = "DISTRIBUTE"
    MEDIUM_KASHIDA = "MEDIUM_KASHIDA"
    HIGH_KASHIDA = "HIGH_KASHIDA"
    LOW_KASHIDA = "LOW_KASHIDA"
    THAI_DISTRIBUTE = "THAI_DISTRIBUTE"


class BreakType(str, Enum):
    """Forced break inserted after a run's text."""

    PAGE = "PAGE"
    COLUMN = "COLUMN"
    TEXT_WRAPPING = "TEXT_WRAPPING"


# Content model
class Style(BaseModel):
    """Immutable text and paragraph style."""

    font_size: int = Field(..., ge=MIN_FONT_SIZE)
    font_family: str = Field(..., min_length=1)
    color: str = Field(..., pattern=HEX_COLOR_PATTERN)
    bold: bool = False
    italic: bool = False
    underline: bool = False
    text_align: TextAlign = TextAlign.LEFT
    break_type: Optional[BreakType] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("font_family")
    @classmethod
    def _font_family_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("font_family cannot be blank")
        return value

    @classmethod
    def default(cls) -> "Style":
        """Style used for synthetic paragraphs that have no content entry."""
        return cls(
            font_size=14,
            font_family="Calibri",
            color="000000",
            bold=False,
            italic=False,
            underline=False,
            text_align=TextAlign.LEFT,
            break_type=None,
        )

    @property
    def hex_color(self) -> str:
        """Six digit upper case color; ``abc`` expands to ``AABBCC``."""
        color = self.color.upper()
        if len(color) == 3:
            color = "".join(c * 2 for c in color)
        return color


class BasicParagraph(BaseModel):
    """One entry of the content list: text (or ``${picture}``) plus style."""

    text: str
    style: Style

    model_config = ConfigDict(frozen=True)


class TableConfig(BaseModel):
    """Maps a contiguous range of content indices onto a rows x columns table."""

    num_columns: int = Field(..., ge=1)
    num_rows: int = Field(..., ge=1)
    start_index: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def end_index(self) -> int:
        return self.start_index + self.num_columns * self.num_rows - 1

    @property
    def num_cells(self) -> int:
        return self.num_columns * self.num_rows

    def contains(self, index: int) -> bool:
        return self.start_index <= index <= self.end_index

    def is_table_big_enough(self) -> bool:
        """True if the table has room for every index from start to end."""
        return self.num_cells >= self.end_index - self.start_index + 1


class DocumentWrapperCreate(BaseModel):
    """Request body describing one document to build."""

    content: List[BasicParagraph] = Field(default_factory=list)
    table_configs: List[TableConfig] = Field(default_factory=list)
    file_name: str = Field(..., pattern=FILE_NAME_PATTERN)
    landscape: bool = False
    num_columns: int = Field(1, ge=1, le=MAX_NUM_COLUMNS)
    num_single_column_lines: int = Field(0, ge=0, le=MAX_SINGLE_COLUMN_LINES)

    @model_validator(mode="after")
    def _check_layout(self) -> "DocumentWrapperCreate":
        errors = validate_layout(
            content_size=len(self.content),
            table_configs=self.table_configs,
            num_columns=self.num_columns,
            num_single_column_lines=self.num_single_column_lines,
        )
        if errors:
            raise ValueError("; ".join(errors))
        return self


def validate_layout(
    content_size: int,
    table_configs: List[TableConfig],
    num_columns: int,
    num_single_column_lines: int,
) -> List[str]:
    """
    Check the positional invariants between content, tables and columns.

    Returns:
        A list of human-readable messages, empty if everything is valid.
    """
    errors: List[str] = []
    last_index = content_size - 1

    for config in table_configs:
        if not config.is_table_big_enough():
            errors.append(f"Table starting at index {config.start_index} is too small")
        if config.end_index > last_index:
            errors.append(
                f"Table ending at index {config.end_index} exceeds last content index {last_index}"
            )

    ordered = sorted(table_configs, key=lambda c: c.start_index)
    for current, following in zip(ordered, ordered[1:]):
        if current.end_index >= following.start_index:
            errors.append(
                f"Tables starting at index {current.start_index} and "
                f"{following.start_index} overlap"
            )

    k = num_single_column_lines
    if k != 0 and k > content_size - 2:
        errors.append(
            f"num_single_column_lines ({k}) cannot exceed content size minus header and footer "
            f"({max(content_size - 2, 0)})"
        )

    if num_columns > 1 and k >= 1:
        for config in table_configs:
            if config.start_index <= k and config.end_index >= 1:
                errors.append(
                    f"Table starting at index {config.start_index} overlaps the "
                    f"single column lines 1..{k}"
                )

    return errors


# Response schemas
class PictureResponse(BaseModel):
    """Uploaded picture metadata."""

    file_name: str
    size: int


class DocumentWrapperResponse(BaseModel):
    """Stored document wrapper."""

    id: int
    file_name: str
    landscape: bool
    num_columns: int
    num_single_column_lines: int
    content: List[BasicParagraph]
    table_configs: List[TableConfig]
    pictures: List[str] = Field(default_factory=list)
    output_file_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BuildResponse(BaseModel):
    """Result of building the .docx for a wrapper."""

    id: int
    output_file_name: str
    message: str


class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    database: str
    timestamp: datetime


class VersionResponse(BaseModel):
    """Service version info."""

    version: str
    env: str
