"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test settings before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from leavedesk.auth.dependencies import get_today
from leavedesk.auth.security import create_access_token
from leavedesk.common.constants import UserRole
from leavedesk.database import Base, get_db
from leavedesk.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import leavedesk.common.audit  # noqa: F401
import leavedesk.core_hr.models  # noqa: F401
import leavedesk.leave.models  # noqa: F401
import leavedesk.notifications.models  # noqa: F401

from leavedesk.core_hr import Employee
from leavedesk.leave.models import LeaveType

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

# Scenario clock: every leave test runs "on" this date
TODAY = date(2024, 6, 1)

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() as a SQLite custom function."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )


TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


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


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB and clock overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    application.dependency_overrides[get_today] = lambda: TODAY
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


# ── Model factories ─────────────────────────────────────────────────

async def make_employee(
    db: AsyncSession,
    *,
    role: UserRole = UserRole.employee,
    full_name: str = "Test User",
    reporting_manager_id: Optional[uuid.UUID] = None,
    is_active: bool = True,
) -> Employee:
    code = uuid.uuid4().hex[:6].upper()
    emp = Employee(
        id=uuid.uuid4(),
        employee_code=f"LD-{code}",
        full_name=full_name,
        email=f"{code.lower()}@leavedesk.test",
        role=role,
        reporting_manager_id=reporting_manager_id,
        is_active=is_active,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )
    db.add(emp)
    await db.flush()
    return emp


async def make_leave_type(
    db: AsyncSession,
    *,
    code: str = "AL",
    name: str = "Annual Leave",
    max_days_per_year: int = 20,
    advance_notice_days: int = 3,
    requires_attachment: bool = False,
    is_active: bool = True,
) -> LeaveType:
    lt = LeaveType(
        id=uuid.uuid4(),
        code=code,
        name=name,
        is_paid=True,
        max_days_per_year=max_days_per_year,
        advance_notice_days=advance_notice_days,
        requires_attachment=requires_attachment,
        is_active=is_active,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )
    db.add(lt)
    await db.flush()
    return lt


@pytest.fixture
async def manager(db) -> Employee:
    return await make_employee(db, role=UserRole.manager, full_name="Maya Manager")


@pytest.fixture
async def admin(db) -> Employee:
    return await make_employee(db, role=UserRole.admin, full_name="Ada Admin")


@pytest.fixture
async def employee(db, manager) -> Employee:
    """E1: an employee reporting to ``manager``."""
    return await make_employee(
        db, full_name="Eli Employee", reporting_manager_id=manager.id,
    )


@pytest.fixture
async def annual(db) -> LeaveType:
    """Annual leave: 20 days per year, 3 days notice, no attachment."""
    return await make_leave_type(db)


@pytest.fixture
async def sick(db) -> LeaveType:
    return await make_leave_type(
        db,
        code="SL",
        name="Sick Leave",
        max_days_per_year=12,
        advance_notice_days=0,
        requires_attachment=True,
    )


# ── Auth helpers ────────────────────────────────────────────────────

def auth_headers_for(
    employee: Employee,
    *,
    expired: bool = False,
) -> dict[str, str]:
    """Bearer headers for *employee*; the role claim mirrors the directory."""
    expires_in = timedelta(hours=-1) if expired else None
    token = create_access_token(employee.id, employee.role, expires_in=expires_in)
    return {"Authorization": f"Bearer {token}"}
