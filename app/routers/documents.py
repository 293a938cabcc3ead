"""
Document builder endpoints.

POST   /                            validate and store a document wrapper.
GET    /{id}                        stored wrapper + uploaded picture names.
DELETE /{id}                        delete wrapper, pictures and generated file.
POST   /{id}/pictures               upload a picture referenced as ${file name}.
GET    /{id}/pictures/{file_name}   raw picture bytes.
POST   /{id}/build                  build the .docx from the stored wrapper.
GET    /{id}/download?pdf=false     download (and delete) the generated file.
"""
from __future__ import annotations

import logging
import mimetypes
import os
from pathlib import Path
from typing import Dict

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.background import BackgroundTask

from app.config import settings
from app.database import get_db
from app.exceptions import (
    ConversionError,
    DocumentWriteError,
    InvalidContentError,
    PictureNotFoundError,
)
from app.models.database_models import DocumentWrapperRecord
from app.models.schemas import (
    BuildResponse,
    DocumentWrapperCreate,
    DocumentWrapperResponse,
    PictureResponse,
)
from app.services.converter import convert_docx_to_pdf, pdf_name_for
from app.services.document_builder import DocumentBuilder
from app.services.document_service import DocumentWrapperService
from app.services.pictures import get_picture_type
from app.utils.helpers import safe_remove

logger = logging.getLogger(__name__)

router = APIRouter()

DOWNLOAD_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


# ---------------------------------------------------------------------------
# Create / read / delete
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=DocumentWrapperResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_document(
    wrapper: DocumentWrapperCreate,
    db: AsyncSession = Depends(get_db),
) -> DocumentWrapperResponse:
    """
    Store a document wrapper.

    Table ranges, single column lines and header/footer positions are
    validated against each other before anything is stored.
    """
    record = await DocumentWrapperService(db).save(wrapper)
    await db.commit()
    return _to_response(record)


@router.get("/{document_id}", response_model=DocumentWrapperResponse)
async def get_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
) -> DocumentWrapperResponse:
    record = await _get_record_or_404(DocumentWrapperService(db), document_id)
    return _to_response(record)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a wrapper, its pictures (CASCADE) and any generated file."""
    service = DocumentWrapperService(db)
    record = await _get_record_or_404(service, document_id)

    safe_remove(record.output_file_name)

    await service.delete(record)
    await db.commit()


# ---------------------------------------------------------------------------
# Pictures
# ---------------------------------------------------------------------------

@router.post(
    "/{document_id}/pictures",
    response_model=PictureResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_picture(
    document_id: int,
    picture: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
) -> PictureResponse:
    """
    Upload a picture. Paragraphs reference it as ``${<file name>}``.

    Uploading a file name twice replaces the earlier picture.
    """
    service = DocumentWrapperService(db)
    record = await _get_record_or_404(service, document_id)

    file_name = picture.filename
    if get_picture_type(file_name) is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=(
                f"Failed to upload picture. File {file_name!r} is not recognized as picture. "
                f"Accepted: {', '.join(settings.SUPPORTED_PICTURE_TYPES)}"
            ),
        )

    data = bytearray()
    while True:
        chunk = await picture.read(1024 * 1024)   # 1 MB slices
        if not chunk:
            break
        data.extend(chunk)
        if len(data) > settings.MAX_PICTURE_SIZE:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=(
                    f"Picture exceeds the {settings.MAX_PICTURE_SIZE // (1024 * 1024)} MB "
                    "size limit."
                ),
            )

    await service.add_picture(record, file_name, bytes(data))
    await db.commit()

    return PictureResponse(file_name=file_name, size=len(data))


@router.get("/{document_id}/pictures/{file_name}")
async def get_picture(
    document_id: int,
    file_name: str,
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        picture = await DocumentWrapperService(db).get_picture_by_file_name(file_name, document_id)
    except PictureNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    media_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
    return Response(content=picture.data, media_type=media_type)


# ---------------------------------------------------------------------------
# Build / download
# ---------------------------------------------------------------------------

@router.post("/{document_id}/build", response_model=BuildResponse)
async def build_document(
    document_id: int,
    db: AsyncSession = Depends(get_db),
) -> BuildResponse:
    """
    Build the .docx for a stored wrapper and keep it for download.

    A previously generated file that was never downloaded is replaced.
    """
    service = DocumentWrapperService(db)
    record = await _get_record_or_404(service, document_id)

    wrapper = service.to_wrapper(record)
    pictures = service.get_pictures(record)

    try:
        path = await run_in_threadpool(_build_and_write, wrapper, pictures)
    except InvalidContentError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except PictureNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except DocumentWriteError as exc:
        logger.error("Build of document %d failed: %s", document_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        )

    if record.output_file_name and record.output_file_name != path:
        safe_remove(record.output_file_name)

    await service.set_output_file_name(record, path)
    await db.commit()

    logger.info("Built document %d -> %s", document_id, path)

    return BuildResponse(
        id=record.id,
        output_file_name=os.path.basename(path),
        message="Document built successfully.",
    )


@router.get("/{document_id}/download")
async def download_document(
    document_id: int,
    pdf: bool = Query(False, description="Convert to .pdf before downloading"),
    db: AsyncSession = Depends(get_db),
) -> FileResponse:
    """
    Download the generated file. The file is deleted once it has been sent,
    so every download needs a preceding build.
    """
    service = DocumentWrapperService(db)
    record = await _get_record_or_404(service, document_id)

    path = record.output_file_name
    if not path or not os.path.exists(path):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Failed to download document. No document created yet.",
        )

    download_name = record.file_name

    converted = False
    if pdf and settings.is_prod:
        logger.warning("PDF conversion is disabled in prod, sending .docx instead")
    elif pdf:
        try:
            path = await convert_docx_to_pdf(path)
        except ConversionError as exc:
            await service.set_output_file_name(record, None)
            await db.commit()
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
        download_name = pdf_name_for(record.file_name)
        converted = True

    if not converted and Path(download_name).suffix.lower() != ".docx":
        download_name = f"{Path(download_name).stem}.docx"

    await service.set_output_file_name(record, None)
    await db.commit()

    return FileResponse(
        path,
        media_type="application/octet-stream",
        filename=download_name,
        headers=DOWNLOAD_HEADERS,
        background=BackgroundTask(safe_remove, path),
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _build_and_write(wrapper: DocumentWrapperCreate, pictures: Dict[str, bytes]) -> str:
    builder = DocumentBuilder(
        wrapper.content,
        f"{Path(wrapper.file_name).stem}.docx",
        num_columns=wrapper.num_columns,
        num_single_column_lines=wrapper.num_single_column_lines,
        landscape=wrapper.landscape,
        pictures=pictures,
        table_configs=wrapper.table_configs,
    )
    return builder.build().write_docx_file()


async def _get_record_or_404(service: DocumentWrapperService, document_id: int) -> DocumentWrapperRecord:
    try:
        return await service.get_by_id(document_id)
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found.",
        )


def _to_response(record: DocumentWrapperRecord) -> DocumentWrapperResponse:
    return DocumentWrapperResponse(
        id=record.id,
        file_name=record.file_name,
        landscape=record.landscape,
        num_columns=record.num_columns,
        num_single_column_lines=record.num_single_column_lines,
        content=record.content_json,
        table_configs=record.table_configs_json or [],
        pictures=[picture.file_name for picture in record.pictures],
        output_file_name=os.path.basename(record.output_file_name) if record.output_file_name else None,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
