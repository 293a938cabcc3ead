"""Database and schema models for the document builder."""
from app.models.database_models import (
    DocumentWrapperRecord,
    Picture,
)
from app.models.schemas import (
    BasicParagraph,
    BreakType,
    DocumentWrapperCreate,
    DocumentWrapperResponse,
    Style,
    TableConfig,
    TextAlign,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "DocumentWrapperRecord",
    "Picture",
    # Pydantic schemas
    "BasicParagraph",
    "BreakType",
    "DocumentWrapperCreate",
    "DocumentWrapperResponse",
    "Style",
    "TableConfig",
    "TextAlign",
    "HealthCheckResponse",
]
