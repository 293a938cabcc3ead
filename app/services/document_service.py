"""
Persistence of document wrappers and their pictures.

Public API
----------
DocumentWrapperService(db).save(wrapper)                           -> DocumentWrapperRecord
DocumentWrapperService(db).get_by_id(document_id)                  -> DocumentWrapperRecord
DocumentWrapperService(db).delete(record)                          -> None
DocumentWrapperService(db).add_picture(record, file_name, data)    -> Picture
DocumentWrapperService(db).get_picture_by_file_name(name, doc_id)  -> Picture
DocumentWrapperService.get_pictures(record)                        -> Dict[str, bytes]
DocumentWrapperService.to_wrapper(record)                          -> DocumentWrapperCreate
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import PictureNotFoundError
from app.models.database_models import DocumentWrapperRecord, Picture
from app.models.schemas import DocumentWrapperCreate

logger = logging.getLogger(__name__)


class DocumentWrapperService:
    """Stores and loads the content model of documents to build."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def save(self, wrapper: DocumentWrapperCreate) -> DocumentWrapperRecord:
        record = DocumentWrapperRecord(
            file_name=wrapper.file_name,
            landscape=wrapper.landscape,
            num_columns=wrapper.num_columns,
            num_single_column_lines=wrapper.num_single_column_lines,
            content_json=[p.model_dump(mode="json") for p in wrapper.content],
            table_configs_json=[t.model_dump(mode="json") for t in wrapper.table_configs],
        )
        self.db.add(record)
        await self.db.flush()
        logger.info("Saved document wrapper id=%d (%s)", record.id, record.file_name)
        return await self.get_by_id(record.id)

    async def get_by_id(self, document_id: int) -> DocumentWrapperRecord:
        """
        Raises:
            LookupError: No wrapper with this id.
        """
        result = await self.db.execute(
            select(DocumentWrapperRecord)
            .where(DocumentWrapperRecord.id == document_id)
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise LookupError(f"Document {document_id} not found")
        return record

    async def delete(self, record: DocumentWrapperRecord) -> None:
        await self.db.delete(record)
        await self.db.flush()
        logger.info("Deleted document wrapper id=%d", record.id)

    async def set_output_file_name(self, record: DocumentWrapperRecord, path: Optional[str]) -> None:
        record.output_file_name = path
        await self.db.flush()

    async def add_picture(self, record: DocumentWrapperRecord, file_name: str, data: bytes) -> Picture:
        """Store picture bytes, replacing a picture with the same file name."""
        for existing in record.pictures:
            if existing.file_name == file_name:
                existing.data = data
                await self.db.flush()
                logger.info("Replaced picture %r of document %d", file_name, record.id)
                return existing

        picture = Picture(document_id=record.id, file_name=file_name, data=data)
        record.pictures.append(picture)
        await self.db.flush()
        logger.info("Added picture %r (%d bytes) to document %d", file_name, len(data), record.id)
        return picture

    async def get_picture_by_file_name(self, file_name: str, document_id: int) -> Picture:
        """
        Raises:
            PictureNotFoundError: No picture with this name for the document.
        """
        result = await self.db.execute(
            select(Picture).where(
                Picture.document_id == document_id,
                Picture.file_name == file_name,
            )
        )
        picture = result.scalar_one_or_none()
        if picture is None:
            raise PictureNotFoundError(file_name)
        return picture

    @staticmethod
    def get_pictures(record: DocumentWrapperRecord) -> Dict[str, bytes]:
        return {picture.file_name: picture.data for picture in record.pictures}

    @staticmethod
    def to_wrapper(record: DocumentWrapperRecord) -> DocumentWrapperCreate:
        """Rebuild (and revalidate) the content model stored in a record."""
        return DocumentWrapperCreate(
            content=record.content_json,
            table_configs=record.table_configs_json or [],
            file_name=record.file_name,
            landscape=record.landscape,
            num_columns=record.num_columns,
            num_single_column_lines=record.num_single_column_lines,
        )
