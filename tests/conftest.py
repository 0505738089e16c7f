"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models are portable (JSON
id lists, plain enums) so they are created directly on SQLite; Redis is
replaced with an ``AsyncMock``.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Iterable, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from taxe.domain.enums import BookingStatus, Role
from taxe.infrastructure.database import Base
from taxe.infrastructure.models import BookingModel, CompanyModel, UserModel
from taxe.infrastructure.repositories import (
    BookingRepository,
    CompanyRepository,
    UserRepository,
)
from taxe.infrastructure.security import (
    create_access_token,
    hash_password,
    pwd_context,
)

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
PASSWORD = "password123"

# Hashing at production cost makes the suite crawl.
pwd_context.update(bcrypt__rounds=4)


def in_hours(hours: float = 2) -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=hours)


# ── Factory ───────────────────────────────────────────────────────────


class Factory:
    """Builds consistent users / companies / bookings, back-references included."""

    _seq = itertools.count(1)

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)
        self.companies = CompanyRepository(session)
        self.bookings = BookingRepository(session)

    async def user(
        self,
        name: str = "Test User",
        role: Role = Role.CUSTOMER,
        email: Optional[str] = None,
        password: str = PASSWORD,
    ) -> UserModel:
        n = next(self._seq)
        return await self.users.create_user(
            email=email or f"user{n}@example.com",
            password_hash=hash_password(password),
            name=name,
            role=role,
        )

    async def company(
        self,
        name: Optional[str] = None,
        admins: Iterable[UserModel] = (),
        drivers: Iterable[UserModel] = (),
    ) -> CompanyModel:
        admins, drivers = list(admins), list(drivers)
        company = await self.companies.create_company(
            name=name or f"Company {next(self._seq)}",
            admins=[a.id for a in admins],
            drivers=[d.id for d in drivers],
        )
        for admin in admins:
            admin.role = Role.COMPANY_ADMIN
            admin.company_id = company.id
        for driver in drivers:
            driver.role = Role.DRIVER
            driver.company_id = company.id
        await self.session.flush()
        return company

    async def booking(
        self,
        customer: UserModel,
        status: BookingStatus = BookingStatus.PENDING,
        company: Optional[CompanyModel] = None,
        driver: Optional[UserModel] = None,
        time: Optional[datetime] = None,
    ) -> BookingModel:
        booking = await self.bookings.create_booking(
            customer_id=customer.id,
            pickup_location="Central Station",
            destination="Airport",
            time=time or in_hours(2),
            no_passengers=2,
        )
        customer.bookings.append(booking.id)
        if company is not None:
            booking.company_id = company.id
            company.bookings.append(booking.id)
        if driver is not None:
            booking.driver_id = driver.id
            driver.bookings.append(booking.id)
        booking.status = status
        await self.session.flush()
        return booking


def token_for(user: UserModel) -> str:
    return create_access_token(user.id, Role(user.role))


def auth(user: UserModel) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test, shared across connections."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


@pytest.fixture
def mock_redis() -> AsyncMock:
    redis = AsyncMock()
    redis.set = AsyncMock(return_value=True)
    redis.eval = AsyncMock(return_value=1)
    return redis


@pytest_asyncio.fixture
async def client(session_factory, mock_redis) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient backed by SQLite and a mocked Redis."""

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _test_redis():
        return mock_redis

    from taxe.api.app import create_app
    from taxe.api.dependencies import get_db
    from taxe.api.middleware import limiter
    from taxe.infrastructure.redis_client import get_redis

    enabled = limiter.enabled
    limiter.enabled = False
    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_redis] = _test_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    limiter.enabled = enabled
