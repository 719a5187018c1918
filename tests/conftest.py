import os
from collections.abc import AsyncGenerator
from datetime import date, timedelta
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

# Load environment variables from .env file
load_dotenv()

from app.core.security import Role, create_access_token
from app.database import get_db
from app.main import app
from app.models import combined_metadata, practitioners

# Combine all metadata
metadata = combined_metadata()

# In-memory SQLite unless TEST_DATABASE_URL points at a separate database
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

if TEST_DATABASE_URL.startswith("postgresql://"):
    TEST_DATABASE_URL = TEST_DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

if TEST_DATABASE_URL.startswith("sqlite"):
    # One shared connection so every session sees the same in-memory database
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    test_engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

CLINIC_ID = UUID("00000000-0000-0000-0000-0000000000c1")
OTHER_CLINIC_ID = UUID("00000000-0000-0000-0000-0000000000c2")

# A Monday, far enough ahead that the no-show sweep leaves it alone
FUTURE_MONDAY = date.today() + timedelta(days=(7 - date.today().weekday()) + 7)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    # Drop tables after test
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _create_practitioner(db_session: AsyncSession, name: str) -> UUID:
    practitioner_id = uuid4()
    await db_session.execute(
        insert(practitioners).values(
            id=practitioner_id,
            clinic_id=CLINIC_ID,
            display_name=name,
            is_active=True,
        )
    )
    await db_session.commit()
    return practitioner_id


@pytest_asyncio.fixture
async def practitioner_id(db_session: AsyncSession) -> UUID:
    """A practitioner of the test clinic with no availability configured."""
    return await _create_practitioner(db_session, "Ana Gómez")


@pytest_asyncio.fixture
async def other_practitioner_id(db_session: AsyncSession) -> UUID:
    """A second practitioner of the test clinic."""
    return await _create_practitioner(db_session, "Bruno Díaz")


def _headers(role: Role, clinic_id: UUID = CLINIC_ID, practitioner_id: UUID | None = None) -> dict:
    token = create_access_token(
        user_id=uuid4(),
        clinic_id=clinic_id,
        role=role,
        practitioner_id=practitioner_id,
        expires_delta=timedelta(minutes=30),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict:
    """Authentication headers of a clinic admin."""
    return _headers(Role.ADMIN)


@pytest.fixture
def receptionist_headers() -> dict:
    """Authentication headers of a receptionist."""
    return _headers(Role.RECEPTIONIST)


@pytest.fixture
def practitioner_headers(practitioner_id: UUID) -> dict:
    """Authentication headers of the test practitioner."""
    return _headers(Role.PRACTITIONER, practitioner_id=practitioner_id)


@pytest.fixture
def unlinked_practitioner_headers() -> dict:
    """Authentication headers of a practitioner account with no agenda of its own."""
    return _headers(Role.PRACTITIONER)


@pytest.fixture
def other_clinic_headers() -> dict:
    """Authentication headers of an admin of another clinic."""
    return _headers(Role.ADMIN, clinic_id=OTHER_CLINIC_ID)


@pytest.fixture
def clinic_id() -> UUID:
    """ID of the test clinic."""
    return CLINIC_ID


@pytest.fixture
def future_monday() -> date:
    """A Monday two weeks ahead."""
    return FUTURE_MONDAY


@pytest.fixture
def clinic_url() -> str:
    """Base URL of the test clinic."""
    return f"/api/v1/clinics/{CLINIC_ID}"


@pytest.fixture
def booking_data(practitioner_id: UUID) -> dict:
    """Appointment creation payload for 10:00 sub-slot 1."""
    return {
        "practitioner_id": str(practitioner_id),
        "patient_id": str(uuid4()),
        "date": FUTURE_MONDAY.isoformat(),
        "start_time": "10:00",
        "sub_slot": 1,
        "treatment_type": "consulta",
    }
