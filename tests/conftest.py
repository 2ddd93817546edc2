import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"

from datetime import datetime, timezone
from io import BytesIO

import pytest
import pytest_asyncio
from PIL import Image
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.api.endpoints import analytics, events
from app.core import config, models
from app.core.database import Base, get_db
from app.core.security import create_access_token, hash_password
from app.main import app

# Clock seen by /analytics/spending-trends
FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def client(session_factory, tmp_path, monkeypatch):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[analytics.get_now] = lambda: FIXED_NOW
    app.dependency_overrides[events.get_session_factory] = lambda: session_factory
    monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path / "uploads"))

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(session_factory, email: str, password: str = "password123"):
    async with session_factory() as session:
        user = models.User(
            email=email,
            username=email.split("@")[0],
            password=hash_password(password),
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


@pytest_asyncio.fixture
async def test_user(session_factory):
    return await make_user(session_factory, "user@example.com")


@pytest_asyncio.fixture
async def other_user(session_factory):
    return await make_user(session_factory, "other@example.com")


@pytest_asyncio.fixture
async def auth_headers_user(test_user):
    return {"Authorization": f"Bearer {create_access_token(test_user.id)}"}


@pytest_asyncio.fixture
async def auth_headers_other(other_user):
    return {"Authorization": f"Bearer {create_access_token(other_user.id)}"}


def build_pdf(*lines: str) -> bytes:
    """One-page PDF whose text layer holds `lines`, one per row."""
    stream = (
        "BT /F1 12 Tf 72 720 Td "
        + " 0 -16 Td ".join(f"({line}) Tj" for line in lines)
        + " ET"
    )
    objects = [
        "<< /Type /Catalog /Pages 2 0 R >>",
        "<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        "/Resources << /Font << /F1 5 0 R >> >> >>",
        f"<< /Length {len(stream)} >>\nstream\n{stream}\nendstream",
        "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    body = "%PDF-1.4\n"
    offsets = []
    for number, obj in enumerate(objects, start=1):
        offsets.append(len(body))
        body += f"{number} 0 obj\n{obj}\nendobj\n"

    xref_at = len(body)
    body += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n"
    body += "".join(f"{offset:010d} 00000 n \n" for offset in offsets)
    body += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n"
    return body.encode("latin-1")


def build_png() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (40, 20), "white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def png_bytes():
    return build_png()


@pytest.fixture
def fake_tesseract(monkeypatch):
    """Replace the Tesseract binary call; returns the list of languages asked for."""
    import pytesseract

    calls = []

    def image_to_string(image, lang=None):
        calls.append(lang)
        return "GREEN GROCER\nApples 3.20\nTotal: 7.40\n"

    monkeypatch.setattr(pytesseract, "image_to_string", image_to_string)
    return calls
