"""
Shared fixtures for the document builder tests.

API tests run against a throwaway SQLite database (override with
TEST_DATABASE_URL). Each test function gets its own session; tables are
created before and dropped after every test. Generated files go to a
temporary directory.
"""
from __future__ import annotations

import base64
import os
import tempfile
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Override settings *before* any app module is imported, so that
# settings and the global engine point at the test locations.
_TMP_DIR = tempfile.mkdtemp(prefix="docbuilder-tests-")

TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["DOCX_DIR"] = os.path.join(_TMP_DIR, "docx")
os.environ["PDF_DIR"] = os.path.join(_TMP_DIR, "pdf")
os.environ["ENV"] = "dev"
os.environ.pop("DOCX_TEMPLATE", None)

from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.schemas import BasicParagraph, Style  # noqa: E402

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test. After the test, all tables are dropped
    so each test starts with a clean slate.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB dependency
    overridden to use the per-test session.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def style() -> Style:
    return Style(font_size=11, font_family="Arial", color="333333")


@pytest.fixture
def make_paragraphs(style: Style):
    """Build a content list from plain strings, all with the same style."""

    def _make(*texts: str, paragraph_style: Style | None = None):
        return [BasicParagraph(text=t, style=paragraph_style or style) for t in texts]

    return _make
