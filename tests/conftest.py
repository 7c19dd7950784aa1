"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL. The
holiday provider is replaced by a fixed mapping so no test touches the
network.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from intranet.common.constants import LeaveStatus, UserRole
from intranet.config import settings
from intranet.database import Base, get_db
from intranet.leave.holidays import get_holidays
from intranet.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import intranet.common.audit  # noqa: F401
import intranet.leave.models  # noqa: F401
import intranet.users.models  # noqa: F401

from intranet.leave.models import LeaveRequest
from intranet.users.models import User

# ── SQLite compat: compile PG-specific types to TEXT/CHAR ───────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)

# French public holidays used across tests
HOLIDAYS: dict[str, str] = {
    "2024-01-01": "1er janvier",
    "2024-05-01": "1er mai",
    "2024-07-14": "14 juillet",
    "2024-12-25": "Jour de Noël",
    "2040-01-03": "Jour férié de test",
    "2040-05-01": "1er mai",
}


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from intranet.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def _override_get_holidays() -> dict[str, str]:
    return dict(HOLIDAYS)


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB and holidays overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    application.dependency_overrides[get_holidays] = _override_get_holidays
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Dates ───────────────────────────────────────────────────────────

def future(days: int) -> date:
    """A day safely after today in any timezone."""
    return date.today() + timedelta(days=days)


# ── Model factories ─────────────────────────────────────────────────

async def make_user(
    db: AsyncSession,
    *,
    email: Optional[str] = None,
    first_name: str = "Camille",
    last_name: str = "Martin",
    role: UserRole = UserRole.user,
    allocation: int = 30,
    conges_enabled: bool = True,
    arrival_date: Optional[date] = None,
    departure_date: Optional[date] = None,
) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email or f"user-{uuid.uuid4().hex[:8]}@intranet.test",
        first_name=first_name,
        last_name=last_name,
        role=role,
        position="Interne",
        conges_enabled=conges_enabled,
        conges_total_days=allocation,
        leave_version=0,
        arrival_date=arrival_date,
        departure_date=departure_date,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.commit()
    return user


async def make_request(
    db: AsyncSession,
    user: User,
    start: date,
    end: date,
    *,
    status: LeaveStatus = LeaveStatus.pending,
    approver: Optional[User] = None,
    reason: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> LeaveRequest:
    """Insert a request directly, bypassing lifecycle validation."""
    now = created_at or datetime.now(timezone.utc)
    request = LeaveRequest(
        id=uuid.uuid4(),
        user_id=user.id,
        start_date=start,
        end_date=end,
        reason=reason,
        status=status,
        approver_id=approver.id if approver else None,
        decision_at=now if approver else None,
        created_at=now,
        updated_at=now,
    )
    db.add(request)
    await db.commit()
    return request


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    role: UserRole = UserRole.user,
    expired: bool = False,
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
async def employee(db) -> User:
    return await make_user(db, email="camille.martin@intranet.test")


@pytest.fixture
async def admin(db) -> User:
    return await make_user(
        db,
        email="admin@intranet.test",
        first_name="Alex",
        last_name="Durand",
        role=UserRole.admin,
        allocation=0,
    )
