"""
.docx -> .pdf conversion through a headless LibreOffice process.

The builder never converts anything itself; this module only shells out to
``libreoffice --headless --convert-to pdf`` and returns the path of the result.
"""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from app.config import settings
from app.exceptions import ConversionError
from app.utils.helpers import safe_remove

logger = logging.getLogger(__name__)


def pdf_name_for(file_name: str) -> str:
    """``report.docx`` -> ``report.pdf``"""
    return f"{Path(file_name).stem}.pdf"


async def convert_docx_to_pdf(docx_path: str) -> str:
    """
    Convert a .docx file to .pdf inside settings.PDF_DIR.

    The source .docx is removed afterwards, whether conversion succeeded or not.

    Args:
        docx_path: Path of the .docx to convert. The .pdf keeps its name
            with a .pdf suffix.

    Returns:
        Path of the .pdf file.

    Raises:
        ConversionError: LibreOffice is missing, failed, timed out, or did
            not produce a file.
    """
    logger.info("Converting .docx to .pdf...")

    if not os.path.exists(docx_path):
        raise ConversionError(f"Cannot convert {docx_path}: file does not exist")

    out_dir = settings.PDF_DIR
    os.makedirs(out_dir, exist_ok=True)

    target = os.path.join(out_dir, pdf_name_for(os.path.basename(docx_path)))

    cmd = [
        settings.LIBREOFFICE_CMD,
        "--headless",
        "--convert-to",
        "pdf",
        docx_path,
        "--outdir",
        out_dir,
    ]

    try:
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ConversionError(f"Cannot start {settings.LIBREOFFICE_CMD}: {exc}") from exc

        try:
            _, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=settings.CONVERSION_TIMEOUT
            )
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise ConversionError(
                f"Conversion timed out after {settings.CONVERSION_TIMEOUT}s"
            ) from exc

        if proc.returncode != 0:
            raise ConversionError(
                f"LibreOffice exited with code {proc.returncode}: "
                f"{stderr.decode(errors='replace').strip()}"
            )

        if not os.path.exists(target):
            raise ConversionError(f"LibreOffice did not produce {target}")

    finally:
        safe_remove(docx_path)

    logger.info("Finished converting .docx to .pdf: %s", target)
    return target
