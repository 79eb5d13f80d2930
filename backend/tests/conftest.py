"""
Wayfarer Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (in-memory DB, API client,
       controllable rate limiter, sample documents).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped, fresh for each test):
    ├── engine:        in-memory SQLite (aiosqlite) with every table created
    ├── db_session:    AsyncSession on that engine, for service-level tests
    ├── clock:         FakeClock driving the rate limiter
    ├── rate_limiter:  RateLimiter(limit=100, window=3600, clock=clock)
    ├── app:           fresh create_app() with the DB dependency overridden
    ├── client:        HTTPX AsyncClient talking to `app` from one fixed IP
    └── production:    switches settings.environment to production
"""

import os

# Must be set before anything imports app.config
os.environ["DATABASE"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Any, AsyncGenerator, Dict  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.config import settings  # noqa: E402
from app.database import Base, get_db_session  # noqa: E402
from app.main import create_app  # noqa: E402
from app.middleware.rate_limit import RateLimiter  # noqa: E402
from app.models.review import Review  # noqa: E402,F401
from app.models.tour import Tour  # noqa: E402,F401
from app.models.user import User  # noqa: E402

CLIENT_IP = "203.0.113.7"


class FakeClock:
    """Manually advanced time source for the rate limiter."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    """
    In-memory SQLite shared by every connection of one test.

    StaticPool keeps a single connection so the schema created here is the
    one the sessions see.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Application
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(clock) -> RateLimiter:
    return RateLimiter(limit=100, window=3600, clock=clock)


@pytest.fixture
def app(session_factory, rate_limiter):
    """Fresh application wired to the test database and limiter."""
    application = create_app(rate_limiter=rate_limiter)

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = override_get_db_session
    return application


def make_client(app, ip: str = CLIENT_IP) -> AsyncClient:
    transport = ASGITransport(app=app, client=(ip, 50000))
    return AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    async with make_client(app) as c:
        yield c


@pytest.fixture
def production(monkeypatch):
    """Run the test in production mode (errors masked, access log off)."""
    monkeypatch.setattr(settings, "environment", "production")


# ══════════════════════════════════════════════════════════════════════════
# Sample Documents
# ══════════════════════════════════════════════════════════════════════════

def tour_payload(**overrides: Any) -> Dict[str, Any]:
    """A valid create body in API (camelCase) form."""
    payload: Dict[str, Any] = {
        "name": "The Forest Hiker",
        "duration": 5,
        "maxGroupSize": 25,
        "difficulty": "easy",
        "price": 397,
        "summary": "Breathtaking hike through the Canadian Banff National Park",
        "description": "Lorem ipsum dolor sit amet.",
        "imageCover": "tour-1-cover.jpg",
        "images": ["tour-1-1.jpg", "tour-1-2.jpg"],
        "startDates": ["2027-04-25T09:00:00+00:00", "2027-07-20T09:00:00+00:00"],
        "startLocation": {
            "type": "Point",
            "coordinates": [-115.570154, 51.178456],
            "address": "224 Banff Ave, Banff, AB, Canada",
            "description": "Banff, CAN",
        },
        "locations": [
            {
                "type": "Point",
                "coordinates": [-116.214531, 51.417611],
                "description": "Banff National Park",
                "day": 1,
            }
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_user(db_session):
    """Factory that inserts a user and returns it."""

    async def _make(name: str = "Lourdes Browning", email: str = None, role: str = "guide") -> User:
        email = email or f"{name.split()[0].lower()}@example.io"
        user = User(name=name, email=email, role=role)
        db_session.add(user)
        await db_session.flush()
        return user

    return _make
