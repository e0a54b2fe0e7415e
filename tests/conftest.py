"""Pytest fixtures for Ezhil backend tests."""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ezhil.database import Base, get_db
from ezhil.main import app
from ezhil.models import Report
from ezhil.rate_limit import limiter
from ezhil.routers import reports as reports_module
from ezhil.routers.assistant import get_gemini_client
from ezhil.routers.reports import get_classifier
from ezhil.schemas.report import ReportBase, ReportOut
from ezhil.services.gemini_client import GeminiClient

# Test database URL - in-memory SQLite shared across one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BASE_TIME = datetime(2026, 1, 18, 10, 0, 0, tzinfo=UTC)


@pytest_asyncio.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_maker = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def classifier() -> AsyncMock:
    """Stand-in for the background classification runner."""
    return AsyncMock(return_value=None)


@pytest.fixture
def gemini_client() -> GeminiClient:
    """Gemini client whose network calls are mocked per test."""
    client = GeminiClient(api_key="test_key", retry_delays=(0, 0, 0))
    client.chat = AsyncMock(return_value="Segregate wet and dry waste.")
    client.classify_image = AsyncMock()
    return client


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    classifier: AsyncMock,
    gemini_client: GeminiClient,
    tmp_path,
    monkeypatch,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database and AI overrides."""
    monkeypatch.setattr(reports_module.settings, "upload_dir", str(tmp_path / "uploads"))
    limiter.reset()

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_classifier] = lambda: classifier
    app.dependency_overrides[get_gemini_client] = lambda: gemini_client

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_report() -> Callable[..., ReportBase]:
    """Build an engine input report."""

    def _make(
        area: str | None = "Anna Nagar",
        severity: int | None = None,
        status: str = "pending_ai",
        waste_type: str | None = None,
    ) -> ReportBase:
        return ReportBase(area=area, severity=severity, status=status, waste_type=waste_type)

    return _make


@pytest.fixture
def make_report_out() -> Callable[..., ReportOut]:
    """Build a full report as returned by the store."""
    counter = iter(range(1, 10_000))

    def _make(**fields: Any) -> ReportOut:
        report_id = next(counter)
        values: dict[str, Any] = {
            "id": report_id,
            "area": "Anna Nagar",
            "status": "pending_ai",
            "user_id": "user-1",
            "user_name": "Arun",
            "created_at": BASE_TIME - timedelta(minutes=report_id),
        }
        values.update(fields)
        return ReportOut(**values)

    return _make


@pytest_asyncio.fixture
async def seed_reports(db_session: AsyncSession):
    """Insert reports newest first; each row is a dict of Report columns."""

    async def _seed(rows: list[dict[str, Any]]) -> list[Report]:
        reports = []
        for index, row in enumerate(rows):
            values = {
                "user_id": "anonymous",
                "status": "pending_ai",
                "created_at": BASE_TIME - timedelta(minutes=index),
            }
            values.update(row)
            report = Report(**values)
            db_session.add(report)
            reports.append(report)
        await db_session.commit()
        return reports

    return _seed


@pytest.fixture
def sample_image() -> bytes:
    """Smallest plausible JPEG payload."""
    return b"\xff\xd8\xff\xe0" + b"\x00" * 64 + b"\xff\xd9"


@pytest.fixture
def gemini_classification_response() -> dict[str, Any]:
    """generateContent response carrying a classification."""
    return {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {
                            "text": (
                                '{"type": "Hazardous", "confidence": 91, '
                                '"severity": 4, "reasoning": "Battery packs in a pile"}'
                            )
                        }
                    ]
                }
            }
        ]
    }
