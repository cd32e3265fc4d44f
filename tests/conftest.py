import os
from collections.abc import AsyncGenerator
from pathlib import Path
from uuid import UUID, uuid4

from dotenv import load_dotenv

# Settings are read at import time, so the test environment goes first.
load_dotenv()
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./clinic_portal_test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["CLINIC_OPEN_HOUR"] = "9"
os.environ["CLINIC_CLOSE_HOUR"] = "18"
os.environ["SLOT_MINUTES"] = "30"
os.environ["CLINIC_TIMEZONE"] = "UTC"
os.environ["LOG_FORMAT"] = "console"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from clinic_portal.core.security import create_access_token
from clinic_portal.database import get_db
from clinic_portal.dependencies import get_cache_manager
from clinic_portal.main import app
from clinic_portal.models import departments, doctors, metadata, users
from clinic_portal.schemas.auth import Actor, UserRole


@pytest_asyncio.fixture
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """
    File-backed SQLite engine, one database per test.

    A file rather than ``:memory:`` lets several sessions race on the same
    data, which the booking tests rely on.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'clinic_portal.db'}",
        echo=False,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with its own session per request and no Redis."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _add_user(db: AsyncSession, full_name: str, role: UserRole) -> UUID:
    user_id = uuid4()
    await db.execute(
        insert(users).values(
            id=user_id,
            email=f"{user_id.hex}@clinic.test",
            full_name=full_name,
            role=role.value,
        )
    )
    return user_id


@pytest_asyncio.fixture
async def clinic(db_session: AsyncSession) -> dict[str, UUID]:
    """
    Seed a small clinic: one department, two doctors, two patients, one admin.

    Returns:
        IDs keyed by ``department``, ``doctor``, ``other_doctor``,
        ``patient``, ``other_patient`` and ``admin``
    """
    department_id = uuid4()
    await db_session.execute(
        insert(departments).values(
            id=department_id,
            name="Cardiology",
            description="Heart and circulation",
        )
    )

    doctor_id = await _add_user(db_session, "Dr. Ana Pop", UserRole.DOCTOR)
    other_doctor_id = await _add_user(db_session, "Dr. Radu Ionescu", UserRole.DOCTOR)
    await db_session.execute(
        insert(doctors),
        [
            {
                "id": doctor_id,
                "department_id": department_id,
                "specialization": "Cardiologist",
            },
            {
                "id": other_doctor_id,
                "department_id": department_id,
                "specialization": "Electrophysiologist",
            },
        ],
    )

    patient_id = await _add_user(db_session, "Maria Stan", UserRole.PATIENT)
    other_patient_id = await _add_user(db_session, "Ion Vasile", UserRole.PATIENT)
    admin_id = await _add_user(db_session, "Clinic Admin", UserRole.ADMIN)

    await db_session.commit()

    return {
        "department": department_id,
        "doctor": doctor_id,
        "other_doctor": other_doctor_id,
        "patient": patient_id,
        "other_patient": other_patient_id,
        "admin": admin_id,
    }


@pytest.fixture
def actors(clinic: dict[str, UUID]) -> dict[str, Actor]:
    """Actors for the seeded users."""
    return {
        "doctor": Actor(id=clinic["doctor"], role=UserRole.DOCTOR),
        "other_doctor": Actor(id=clinic["other_doctor"], role=UserRole.DOCTOR),
        "patient": Actor(id=clinic["patient"], role=UserRole.PATIENT),
        "other_patient": Actor(id=clinic["other_patient"], role=UserRole.PATIENT),
        "admin": Actor(id=clinic["admin"], role=UserRole.ADMIN),
    }


@pytest.fixture
def auth_headers(clinic: dict[str, UUID]) -> dict[str, dict[str, str]]:
    """Bearer headers for the seeded users."""
    return {
        name: {"Authorization": f"Bearer {create_access_token(user_id)}"}
        for name, user_id in clinic.items()
        if name != "department"
    }
