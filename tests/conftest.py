"""Pytest configuration and fixtures for test suite."""

import os

# Set test configuration BEFORE any dealerdesk import: Settings() is read once.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("IDP_SECRET_KEY", "test-idp-secret")
os.environ.setdefault("IDP_ALGORITHM", "HS256")

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy import select  # noqa: E402

from dealerdesk.core.config import settings  # noqa: E402
from dealerdesk.db.session import Database  # noqa: E402
from dealerdesk.models import Base, Company, Dealer, User  # noqa: E402
from dealerdesk.schemas.user import CurrentUser  # noqa: E402


@pytest_asyncio.fixture
async def database(tmp_path):
    """File-backed SQLite database with the full schema, one per test."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'dealerdesk.db'}")
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as s:
        yield s


def make_user(user_id, role, company_id=7, reports_to_id=None, **extra) -> User:
    return User(
        id=user_id,
        external_identity_id=extra.pop("external_identity_id", f"idp_user_{user_id}"),
        company_id=company_id,
        email=extra.pop("email", f"user{user_id}@example.com"),
        first_name=extra.pop("first_name", f"First{user_id}"),
        last_name=extra.pop("last_name", f"Last{user_id}"),
        role=role,
        reports_to_id=reports_to_id,
        **extra,
    )


@pytest_asyncio.fixture
async def team(database):
    """
    Company 7:
      U1 manager (reports to nobody) manages U2, U3
      U4 general-manager, U5 executive, U6 assistant-manager
      U10 senior-manager (the usual caller)
    Company 8:
      U20 manager (other tenant)
    """
    async with database.session() as s:
        s.add_all([
            Company(id=7, company_name="Acme Cement"),
            Company(id=8, company_name="Other Corp"),
        ])
        await s.flush()
        s.add_all([
            make_user(1, "manager"),
            make_user(4, "general-manager"),
            make_user(5, "executive", region="East", area="Kolkata"),
            make_user(6, "assistant-manager"),
            make_user(10, "senior-manager", region="East", area="Howrah"),
            make_user(20, "manager", company_id=8, region="West"),
        ])
        await s.flush()
        s.add_all([
            make_user(2, "executive", reports_to_id=1, region="North"),
            make_user(3, "executive", reports_to_id=1),
        ])
    return database


@pytest_asyncio.fixture
async def dealers(team):
    async with team.session() as s:
        s.add_all([
            Dealer(id="d-1", user_id=2, name="Alpha Traders", type="Dealer", region="North", area="Siliguri"),
            Dealer(id="d-2", user_id=3, name="Beta Stores", type="Sub Dealer", region="East", area="Howrah"),
            Dealer(id="d-3", user_id=None, name="Orphan Depot", type="Retailer", region="South", area="Durgapur"),
            Dealer(id="d-4", user_id=20, name="Other Tenant Co", type="Distributor", region="West", area="Pune"),
            Dealer(id="d-5", user_id=None, name="Blank Area", type="Dealer", region=" ", area=""),
        ])
    return team


async def reports_to(database: Database) -> dict[int, int | None]:
    """Current user id → manager id, for every user."""
    async with database.session() as s:
        result = await s.execute(select(User.id, User.reports_to_id).order_by(User.id))
        return {row.id: row.reports_to_id for row in result}


def current_user(user_id=10, role="senior-manager", company_id=7) -> CurrentUser:
    return CurrentUser(
        id=user_id,
        role=role,
        company_id=company_id,
        first_name="Caller",
        last_name="User",
        email=f"user{user_id}@example.com",
    )


def make_token(subject: str, role: str | None = None, **claims) -> str:
    payload = {"sub": subject, **claims}
    if role:
        payload["role"] = role
    return jwt.encode(payload, settings.IDP_SECRET_KEY, algorithm=settings.IDP_ALGORITHM)


def auth_headers(subject: str = "idp_user_10") -> dict:
    return {"Authorization": f"Bearer {make_token(subject)}"}


@pytest.fixture
def mock_redis_client():
    """Provide a mock Redis client for testing."""
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.sadd = AsyncMock(return_value=1)
    client.smembers = AsyncMock(return_value=set())
    client.delete = AsyncMock(return_value=1)
    client.eval = AsyncMock(return_value=0)
    client.aclose = AsyncMock()
    return client


@pytest_asyncio.fixture
async def client(team, mock_redis_client):
    """HTTP client against a fresh app wired to the test database and a mock cache."""
    from main import create_application
    from dealerdesk.services.cache_service import RedisTagCache

    app = create_application()
    app.state.database = team
    app.state.cache = RedisTagCache(mock_redis_client, key_prefix="test:")
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
