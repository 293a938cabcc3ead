"""Tests for the LibreOffice pass-through converter."""
import os

import pytest

from app.config import settings
from app.exceptions import ConversionError
from app.services.converter import convert_docx_to_pdf, pdf_name_for


def test_pdf_name_for():
    assert pdf_name_for("2026-10-18T09-15-02_report.docx") == "2026-10-18T09-15-02_report.pdf"
    assert pdf_name_for("report.pdf") == "report.pdf"


@pytest.mark.asyncio
async def test_missing_source_file(tmp_path):
    with pytest.raises(ConversionError, match="does not exist"):
        await convert_docx_to_pdf(str(tmp_path / "missing.docx"))


@pytest.mark.asyncio
async def test_missing_converter_removes_source(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "LIBREOFFICE_CMD", str(tmp_path / "no-such-libreoffice"))
    monkeypatch.setattr(settings, "PDF_DIR", str(tmp_path / "pdf"))
    source = tmp_path / "a.docx"
    source.write_bytes(b"PK")

    with pytest.raises(ConversionError, match="Cannot start"):
        await convert_docx_to_pdf(str(source))

    assert not os.path.exists(source)


# Stand-in for LibreOffice: writes <outdir>/<stem>.pdf like the real one does.
FAKE_CONVERTER = """#!/bin/sh
name=$(basename "$4" .docx)
printf '%%PDF-1.4' > "$6/$name.pdf"
"""


@pytest.mark.asyncio
@pytest.mark.skipif(os.name == "nt", reason="needs a POSIX shell")
async def test_converted_file_is_named_after_source(tmp_path, monkeypatch):
    script = tmp_path / "fake-libreoffice"
    script.write_text(FAKE_CONVERTER)
    script.chmod(0o755)
    monkeypatch.setattr(settings, "LIBREOFFICE_CMD", str(script))
    monkeypatch.setattr(settings, "PDF_DIR", str(tmp_path / "pdf"))
    source = tmp_path / "2026-10-18T09-15-02_report.docx"
    source.write_bytes(b"PK")

    path = await convert_docx_to_pdf(str(source))

    assert path == str(tmp_path / "pdf" / "2026-10-18T09-15-02_report.pdf")
    assert open(path, "rb").read() == b"%PDF-1.4"
    assert not os.path.exists(source)
