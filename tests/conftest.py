"""Pytest configuration and fixtures."""

from datetime import date, time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from booking_core.auth.jwt import create_access_token
from booking_core.database.models import Base, DoctorSchedule, DoctorTimeOff
from booking_core.domain import WorkingHours
from booking_core.main import app
from booking_core.storage import InMemoryStorageProvider, SQLStorageProvider

# Test database URL (in-memory SQLite for unit tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

DOCTOR_ID = "doc-1"
HOSPITAL_ID = "hosp-1"
PATIENT_ID = "p1"
OTHER_PATIENT_ID = "p2"

# 2030-01-07 is a Monday; the following Saturday has no working hours
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
SATURDAY = date(2030, 1, 12)
DAY_OFF = date(2030, 1, 9)

WEEKDAY_HOURS = WorkingHours(
    start=time(9, 0),
    end=time(17, 0),
    break_start=time(12, 0),
    break_end=time(13, 0),
)


@pytest.fixture
def memory_provider() -> InMemoryStorageProvider:
    """In-memory provider with doc-1 working Mon-Fri 09:00-17:00 at hosp-1."""
    provider = InMemoryStorageProvider()
    for weekday in range(5):
        provider.set_working_hours(DOCTOR_ID, HOSPITAL_ID, weekday, WEEKDAY_HOURS)
    provider.add_time_off(DOCTOR_ID, HOSPITAL_ID, DAY_OFF)
    return provider


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory configured like the application's."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


async def seed_schedule(session_factory) -> None:
    """Give doc-1 the same week and day off as ``memory_provider``."""
    async with session_factory() as session:
        for weekday in range(5):
            session.add(
                DoctorSchedule(
                    doctor_id=DOCTOR_ID,
                    hospital_id=HOSPITAL_ID,
                    weekday=weekday,
                    start_time=WEEKDAY_HOURS.start,
                    end_time=WEEKDAY_HOURS.end,
                    break_start_time=WEEKDAY_HOURS.break_start,
                    break_end_time=WEEKDAY_HOURS.break_end,
                )
            )
        session.add(DoctorTimeOff(doctor_id=DOCTOR_ID, hospital_id=HOSPITAL_ID, off_date=DAY_OFF))
        await session.commit()


@pytest.fixture
async def sql_provider(session_factory) -> SQLStorageProvider:
    """SQL provider over the test database, seeded like ``memory_provider``."""
    await seed_schedule(session_factory)
    return SQLStorageProvider(session_factory)


@pytest.fixture
async def file_sql_provider(tmp_path):
    """SQL provider over a SQLite file with a real connection pool.

    Unlike the StaticPool engine, every session gets its own connection, so
    concurrent transactions really interleave.
    """
    db_path = tmp_path / "booking.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await seed_schedule(factory)

    yield SQLStorageProvider(factory)

    await engine.dispose()


@pytest.fixture
def client(memory_provider):
    """Create test client backed by the in-memory provider."""
    app.state.storage = memory_provider
    yield TestClient(app)
    del app.state.storage


def auth_headers(user_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id=user_id, role=role)}"}


@pytest.fixture
def patient_headers():
    return auth_headers(PATIENT_ID, "patient")


@pytest.fixture
def other_patient_headers():
    return auth_headers(OTHER_PATIENT_ID, "patient")


@pytest.fixture
def doctor_headers():
    return auth_headers(DOCTOR_ID, "doctor")


@pytest.fixture
def admin_headers():
    return auth_headers("admin-1", "admin")


@pytest.fixture(params=["memory", "sql"])
def provider(request, memory_provider, sql_provider):
    """Each storage-backed test runs once per provider."""
    if request.param == "memory":
        return memory_provider
    return sql_provider
