"""
SQLAlchemy ORM models for the document builder database.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Boolean,
    LargeBinary,
    UniqueConstraint,
    JSON,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class DocumentWrapperRecord(Base):
    """Persisted content model: paragraphs, table configs and layout settings."""

    __tablename__ = "document_wrappers"

    id = Column(Integer, primary_key=True, index=True)
    file_name = Column(String(255), nullable=False)
    landscape = Column(Boolean, nullable=False, default=False)
    num_columns = Column(Integer, nullable=False, default=1)
    num_single_column_lines = Column(Integer, nullable=False, default=0)
    content_json = Column(JSON, nullable=False)  # list of {"text", "style"}
    table_configs_json = Column(JSON, nullable=False, default=list)
    output_file_name = Column(String(512), nullable=True)  # last generated .docx
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    pictures = relationship(
        "Picture",
        back_populates="document",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class Picture(Base):
    """Raw picture bytes referenced by ``${file name}`` paragraphs."""

    __tablename__ = "pictures"
    __table_args__ = (
        UniqueConstraint("document_id", "file_name", name="uq_pictures_document_file"),
    )

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(
        Integer,
        ForeignKey("document_wrappers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_name = Column(String(255), nullable=False)
    data = Column(LargeBinary, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    document = relationship("DocumentWrapperRecord", back_populates="pictures")
