"""Tests for the /api/documents endpoints."""
import io
import os

import pytest
from docx import Document
from httpx import AsyncClient

from app.config import settings


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

STYLE = {"font_size": 12, "font_family": "Calibri", "color": "000000"}


def _wrapper(*texts: str, **overrides) -> dict:
    body = {
        "content": [{"text": t, "style": STYLE} for t in texts],
        "table_configs": [],
        "file_name": "report.docx",
    }
    body.update(overrides)
    return body


async def _create(client: AsyncClient, body: dict) -> int:
    resp = await client.post("/api/documents", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


# ---------------------------------------------------------------------------
# Create / read / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_and_get_document(client: AsyncClient):
    body = _wrapper(
        "Header", "a", "b", "c", "Footer",
        table_configs=[{"num_columns": 2, "num_rows": 1, "start_index": 2}],
        num_columns=2,
        num_single_column_lines=1,
    )
    document_id = await _create(client, body)

    resp = await client.get(f"/api/documents/{document_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["file_name"] == "report.docx"
    assert data["num_columns"] == 2
    assert [p["text"] for p in data["content"]] == ["Header", "a", "b", "c", "Footer"]
    assert data["content"][0]["style"]["text_align"] == "LEFT"
    assert data["table_configs"] == [{"num_columns": 2, "num_rows": 1, "start_index": 2}]
    assert data["pictures"] == []
    assert data["output_file_name"] is None


@pytest.mark.asyncio
async def test_create_rejects_invalid_layout(client: AsyncClient):
    body = _wrapper(
        "H", "a", "b", "F",
        table_configs=[
            {"num_columns": 2, "num_rows": 1, "start_index": 1},
            {"num_columns": 1, "num_rows": 1, "start_index": 2},
        ],
    )
    resp = await client.post("/api/documents", json=body)
    assert resp.status_code == 422
    assert "overlap" in resp.text


@pytest.mark.asyncio
async def test_create_rejects_bad_style(client: AsyncClient):
    body = _wrapper("H", "F")
    body["content"][0]["style"] = {**STYLE, "font_size": 4}
    resp = await client.post("/api/documents", json=body)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_missing_document(client: AsyncClient):
    resp = await client.get("/api/documents/9999")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_document(client: AsyncClient, png_bytes: bytes):
    document_id = await _create(client, _wrapper("H", "F"))
    await client.post(
        f"/api/documents/{document_id}/pictures",
        files={"picture": ("logo.png", io.BytesIO(png_bytes), "image/png")},
    )

    resp = await client.delete(f"/api/documents/{document_id}")
    assert resp.status_code == 204

    resp = await client.get(f"/api/documents/{document_id}")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Pictures
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_upload_and_get_picture(client: AsyncClient, png_bytes: bytes):
    document_id = await _create(client, _wrapper("H", "${logo.png}", "F"))

    resp = await client.post(
        f"/api/documents/{document_id}/pictures",
        files={"picture": ("logo.png", io.BytesIO(png_bytes), "image/png")},
    )
    assert resp.status_code == 201
    assert resp.json() == {"file_name": "logo.png", "size": len(png_bytes)}

    resp = await client.get(f"/api/documents/{document_id}/pictures/logo.png")
    assert resp.status_code == 200
    assert resp.content == png_bytes
    assert resp.headers["content-type"] == "image/png"

    data = (await client.get(f"/api/documents/{document_id}")).json()
    assert data["pictures"] == ["logo.png"]


@pytest.mark.asyncio
async def test_upload_same_picture_twice_replaces_it(client: AsyncClient, png_bytes: bytes):
    document_id = await _create(client, _wrapper("H", "F"))
    for payload in (b"old", png_bytes):
        resp = await client.post(
            f"/api/documents/{document_id}/pictures",
            files={"picture": ("logo.png", io.BytesIO(payload), "image/png")},
        )
        assert resp.status_code == 201

    resp = await client.get(f"/api/documents/{document_id}/pictures/logo.png")
    assert resp.content == png_bytes
    data = (await client.get(f"/api/documents/{document_id}")).json()
    assert data["pictures"] == ["logo.png"]


@pytest.mark.asyncio
async def test_upload_rejects_non_picture(client: AsyncClient):
    document_id = await _create(client, _wrapper("H", "F"))
    resp = await client.post(
        f"/api/documents/{document_id}/pictures",
        files={"picture": ("notes.txt", b"hello", "text/plain")},
    )
    assert resp.status_code == 422
    assert "not recognized as picture" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_upload_rejects_large_picture(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "MAX_PICTURE_SIZE", 10)
    document_id = await _create(client, _wrapper("H", "F"))
    resp = await client.post(
        f"/api/documents/{document_id}/pictures",
        files={"picture": ("big.png", b"x" * 11, "image/png")},
    )
    assert resp.status_code == 413


@pytest.mark.asyncio
async def test_get_missing_picture(client: AsyncClient):
    document_id = await _create(client, _wrapper("H", "F"))
    resp = await client.get(f"/api/documents/{document_id}/pictures/nope.png")
    assert resp.status_code == 404
    assert "nope.png" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# Build / download
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_download_before_build_conflicts(client: AsyncClient):
    document_id = await _create(client, _wrapper("H", "F"))
    resp = await client.get(f"/api/documents/{document_id}/download")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_build_and_download(client: AsyncClient, png_bytes: bytes):
    body = _wrapper(
        "Header", "intro", "${logo.png}", "c1", "c2", "Footer",
        table_configs=[{"num_columns": 2, "num_rows": 1, "start_index": 3}],
        landscape=True,
    )
    document_id = await _create(client, body)
    await client.post(
        f"/api/documents/{document_id}/pictures",
        files={"picture": ("logo.png", io.BytesIO(png_bytes), "image/png")},
    )

    resp = await client.post(f"/api/documents/{document_id}/build")
    assert resp.status_code == 200, resp.text
    built = resp.json()
    assert built["output_file_name"].endswith("_report.docx")

    generated = os.path.join(settings.DOCX_DIR, built["output_file_name"])
    assert os.path.exists(generated)

    resp = await client.get(f"/api/documents/{document_id}/download")
    assert resp.status_code == 200
    assert "attachment" in resp.headers["content-disposition"]
    assert "report.docx" in resp.headers["content-disposition"]
    assert resp.headers["cache-control"] == "no-cache, no-store, must-revalidate"

    document = Document(io.BytesIO(resp.content))
    section = document.sections[-1]
    assert section.page_width > section.page_height
    assert section.header.paragraphs[0].text == "Header"
    assert len(document.inline_shapes) == 1
    assert [cell.text for cell in document.tables[0].rows[0].cells] == ["c1", "c2"]

    # the file is gone once downloaded
    assert not os.path.exists(generated)
    resp = await client.get(f"/api/documents/{document_id}/download")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_build_with_missing_picture(client: AsyncClient):
    document_id = await _create(client, _wrapper("H", "${logo.png}", "F"))
    resp = await client.post(f"/api/documents/{document_id}/build")
    assert resp.status_code == 404
    assert "logo.png" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_pdf_download_falls_back_to_docx_in_prod(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "ENV", "prod")
    document_id = await _create(client, _wrapper("H", "body", "F"))
    await client.post(f"/api/documents/{document_id}/build")

    resp = await client.get(f"/api/documents/{document_id}/download", params={"pdf": True})
    assert resp.status_code == 200
    assert "report.docx" in resp.headers["content-disposition"]
    assert resp.content[:2] == b"PK"


@pytest.mark.asyncio
async def test_pdf_conversion_failure(client: AsyncClient, monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "LIBREOFFICE_CMD", str(tmp_path / "no-such-libreoffice"))
    document_id = await _create(client, _wrapper("H", "body", "F"))
    await client.post(f"/api/documents/{document_id}/build")

    resp = await client.get(f"/api/documents/{document_id}/download", params={"pdf": True})
    assert resp.status_code == 502

    resp = await client.get(f"/api/documents/{document_id}/download")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_prod_fallback_names_pdf_wrapper_as_docx(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "ENV", "prod")
    document_id = await _create(client, _wrapper("H", "body", "F", file_name="report.pdf"))
    resp = await client.post(f"/api/documents/{document_id}/build")
    assert resp.json()["output_file_name"].endswith("_report.docx")

    resp = await client.get(f"/api/documents/{document_id}/download", params={"pdf": True})
    assert resp.status_code == 200
    assert 'filename="report.docx"' in resp.headers["content-disposition"]
    assert resp.content[:2] == b"PK"


@pytest.mark.asyncio
@pytest.mark.skipif(os.name == "nt", reason="needs a POSIX shell")
async def test_pdf_download(client: AsyncClient, monkeypatch, tmp_path):
    script = tmp_path / "fake-libreoffice"
    script.write_text(
        "#!/bin/sh\n"
        'name=$(basename "$4" .docx)\n'
        "printf '%%PDF-1.4' > \"$6/$name.pdf\"\n"
    )
    script.chmod(0o755)
    monkeypatch.setattr(settings, "LIBREOFFICE_CMD", str(script))
    document_id = await _create(client, _wrapper("H", "body", "F"))
    await client.post(f"/api/documents/{document_id}/build")

    resp = await client.get(f"/api/documents/{document_id}/download", params={"pdf": True})
    assert resp.status_code == 200
    assert 'filename="report.pdf"' in resp.headers["content-disposition"]
    assert resp.content == b"%PDF-1.4"
    assert os.listdir(settings.PDF_DIR) == []
