"""
Shared test fixtures for the attendance payroll test suite.

Async throughout (aiosqlite + AsyncSession). Authentication is replaced by
a switchable current user so role guards still run for real.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
# Use async sqlite driver
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
# CORS fix (JSON format)
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["SECRET_KEY"] = "test-secret-key-for-the-payroll-suite"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.deps import get_current_active_user, get_db
from app.db.base import Base
from app.main import app
from app.models.employee import Attendance, Employee
from app.models.user import User

# Create a test engine for the entire session
test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

ADMIN = {"id": 1, "email": "admin@example.com", "role": "admin"}
_auth_state: dict = {"user": ADMIN}


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


# ── Auth Overrides ──────────────────────────────────────────────────
async def _override_get_current_active_user() -> User:
    return User(is_active=True, **_auth_state["user"])


app.dependency_overrides[get_current_active_user] = _override_get_current_active_user


@pytest.fixture(autouse=True)
def _reset_current_user():
    _auth_state["user"] = ADMIN
    yield
    _auth_state["user"] = ADMIN


@pytest.fixture
def login_as():
    """Switch the caller seen by every endpoint: ``login_as(user_id, role)``."""

    def _login(user_id: int, role: str = "employee") -> None:
        _auth_state["user"] = {"id": user_id, "email": f"user{user_id}@example.com", "role": role}

    return _login


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


# ── Seed helpers ────────────────────────────────────────────────────
async def seed_employee(
    session: AsyncSession,
    user_id: int,
    code: str,
    name: str = "Test Employee",
    salary: float = 50000,
    role: str = "employee",
) -> Employee:
    session.add(User(id=user_id, email=f"user{user_id}@example.com", role=role))
    employee = Employee(
        user_id=user_id,
        name=name,
        employee_code=code,
        email=f"{code.lower()}@example.com",
        department="Engineering",
        monthly_salary=salary,
    )
    session.add(employee)
    await session.commit()
    return employee


def local_dt(day: str, hhmm: str, offset_minutes: int = 330) -> datetime:
    """UTC timestamp for a wall-clock time on the default +05:30 clock."""
    local = datetime.fromisoformat(f"{day}T{hhmm}:00")
    return (local - timedelta(minutes=offset_minutes)).replace(tzinfo=timezone.utc)


async def seed_attendance(
    session: AsyncSession,
    employee_id: int,
    day: str,
    clock_in: str | None,
    clock_out: str | None,
    **extra,
) -> Attendance:
    record = Attendance(
        employee_id=employee_id,
        date=day,
        status=extra.pop("status", "CHECKED_OUT" if clock_out else "CHECKED_IN"),
        shift_start_time=extra.pop("shift_start_time", "09:00"),
        clock_in_time=local_dt(day, clock_in) if clock_in else None,
        clock_out_time=local_dt(day, clock_out) if clock_out else None,
        clock_in_lat=24.86,
        clock_in_long=67.0,
        clock_in_office_tag="HQ",
        **extra,
    )
    session.add(record)
    await session.commit()
    return record


@pytest.fixture
async def employee(db_session: AsyncSession) -> Employee:
    """A linked employee (user id 2) with a 50 000 monthly salary."""
    return await seed_employee(db_session, user_id=2, code="EMP-001", name="Alice Khan")


@pytest.fixture
def make_attendance(db_session: AsyncSession):
    """``await make_attendance(employee_id, "2026-03-02", "09:00", "17:00")``"""

    async def _make(employee_id: int, day: str, clock_in: str | None, clock_out: str | None, **extra):
        return await seed_attendance(db_session, employee_id, day, clock_in, clock_out, **extra)

    return _make


@pytest.fixture
def make_employee(db_session: AsyncSession):
    async def _make(user_id: int, code: str, **kwargs) -> Employee:
        return await seed_employee(db_session, user_id, code, **kwargs)

    return _make
