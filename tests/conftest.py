"""
Test configuration and fixtures for CrowdLend backend tests.
"""
import os

# Settings are read once at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from typing import AsyncGenerator
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from crowdlend.core.cache import Cache
from crowdlend.core.database import Base, get_db
from crowdlend.core.dependencies import get_cache
from crowdlend.core.ledger import utcnow
from crowdlend.core.permissions import UserRole
from crowdlend.core.security import get_password_hash
from crowdlend.modules.campaigns.models import CampaignCategory
from crowdlend.modules.campaigns.schemas import CampaignCreate
from crowdlend.modules.campaigns.services import CampaignService
from crowdlend.modules.loans.schemas import LoanCreate
from crowdlend.modules.loans.services import LoanService
from crowdlend.modules.users.models import User
from crowdlend.modules.users.services import UserService
from main import app


# ============================================================
# Database Fixtures
# ============================================================

# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "TestPassword123!"


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for each test"""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


# ============================================================
# Cache Fixtures
# ============================================================

@pytest.fixture
def redis_mock():
    """Redis client stand-in: every read is a miss"""
    redis = AsyncMock()
    redis.get.return_value = None
    redis.keys.return_value = []
    return redis


@pytest.fixture
def cache(redis_mock) -> Cache:
    return Cache(redis_mock)


@pytest.fixture
async def client(db_session, cache) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and cache overrides"""

    async def override_get_db():
        yield db_session

    async def override_get_cache():
        return cache

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = override_get_cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================
# User Fixtures
# ============================================================

async def create_user(db_session, email: str, *roles: UserRole) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(TEST_PASSWORD),
        first_name="Test",
        last_name="User",
        roles=[role.value for role in roles],
        is_active=True,
        is_blocked=False
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    """Bearer header for the given user"""
    token = UserService.create_tokens(user)["access_token"]
    return {"Authorization": f"Bearer {token}"}


def run_before_first_update(monkeypatch, session, action):
    """Await ``action`` once, right before the session issues its first UPDATE"""
    original = session.execute
    pending = [action]

    async def execute(statement, *args, **kwargs):
        if pending and getattr(statement, "is_update", False):
            await pending.pop()()
        return await original(statement, *args, **kwargs)

    monkeypatch.setattr(session, "execute", execute)


@pytest.fixture
async def creator(db_session):
    return await create_user(db_session, "creator@crowdlend.io", UserRole.CAMPAIGN_CREATOR)


@pytest.fixture
async def donor(db_session):
    return await create_user(db_session, "donor@crowdlend.io", UserRole.LENDER)


@pytest.fixture
async def borrower(db_session):
    return await create_user(db_session, "borrower@crowdlend.io", UserRole.BORROWER)


@pytest.fixture
async def lender(db_session):
    return await create_user(db_session, "lender@crowdlend.io", UserRole.LENDER)


@pytest.fixture
async def second_lender(db_session):
    return await create_user(db_session, "lender2@crowdlend.io", UserRole.LENDER)


@pytest.fixture
async def admin(db_session):
    return await create_user(db_session, "admin@crowdlend.io", UserRole.ADMIN)


# ============================================================
# Campaign Fixtures
# ============================================================

def campaign_payload(**overrides) -> CampaignCreate:
    now = utcnow()
    data = {
        "title": "Community Solar Garden",
        "description": "Funding panels for the neighbourhood solar garden project.",
        "category": CampaignCategory.ENVIRONMENT,
        "goal_amount": Decimal("1000.00"),
        "start_date": now - timedelta(days=1),
        "end_date": now + timedelta(days=30),
    }
    data.update(overrides)
    return CampaignCreate(**data)


@pytest.fixture
async def draft_campaign(db_session, cache, creator):
    return await CampaignService(db_session, cache).create(creator.id, campaign_payload())


@pytest.fixture
async def active_campaign(db_session, cache, creator, draft_campaign):
    return await CampaignService(db_session, cache).publish(draft_campaign.id, creator.id)


# ============================================================
# Loan Fixtures
# ============================================================

def loan_payload(**overrides) -> LoanCreate:
    data = {
        "title": "Bakery equipment",
        "description": "Second oven to double daily bread production capacity.",
        "requested_amount": Decimal("12000.00"),
        "interest_rate": Decimal("12.00"),
        "duration": 12,
        "purpose": "Small business expansion",
    }
    data.update(overrides)
    return LoanCreate(**data)


@pytest.fixture
async def requested_loan(db_session, cache, borrower):
    return await LoanService(db_session, cache).request(borrower.id, loan_payload())


@pytest.fixture
async def open_loan(db_session, cache, admin, requested_loan):
    """Approved loan accepting lender contributions"""
    return await LoanService(db_session, cache).decide(requested_loan.id, admin.id, approved=True)


@pytest.fixture
async def active_loan(db_session, cache, lender, open_loan):
    """Fully funded loan with its repayment schedule"""
    return await LoanService(db_session, cache).fund(open_loan.id, lender.id, open_loan.requested_amount)
