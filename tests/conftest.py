"""
Pytest configuration and shared fixtures for backend tests.
"""

import os
import sys
from pathlib import Path

# Settings are read once at import time, so the test environment must be in
# place before any application module is imported
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "test_key_secret"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "test_webhook_secret"
os.environ["GUILD_API_URL"] = "http://guild.test/api"
os.environ["GUILD_API_KEY"] = "test_guild_key"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"
os.environ.pop("RESEND_API_KEY", None)

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import hashlib
import hmac
from datetime import UTC, datetime
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.security import PasswordHasher
from infrastructure.config import get_settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    AuthProvider,
    Base,
    BillingCycle,
    ClientOrganization,
    ClientStatus,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
    UserRole,
)
from services.seed import seed_default_plans
from services.subscriptions import build_subscription

settings = get_settings()

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "TestPass123"

# bcrypt at the default cost makes every user fixture slow
_FAST_HASH = PasswordHasher(rounds=4).hash(TEST_PASSWORD)


def razorpay_signature(order_id: str, payment_id: str) -> str:
    """Checkout signature as Razorpay would compute it with the test key secret."""
    return hmac.new(
        settings.razorpay_key_secret.encode(),
        f"{order_id}|{payment_id}".encode(),
        hashlib.sha256,
    ).hexdigest()


def webhook_signature(body: bytes) -> str:
    return hmac.new(settings.razorpay_webhook_secret.encode(), body, hashlib.sha256).hexdigest()


def bearer(user: User) -> dict:
    from api.routes.auth import token_service

    token = token_service.create_access_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
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
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session
        await session.rollback()


async def _make_user(
    db: AsyncSession,
    email: str,
    name: str,
    role: UserRole = UserRole.USER,
    client: ClientOrganization | None = None,
    **overrides,
) -> User:
    user = User(
        email=email,
        name=name,
        password_hash=_FAST_HASH,
        provider=AuthProvider.EMAIL.value,
        role=role.value,
        is_active=True,
        email_verified=True,
        client_organization_id=client.id if client else None,
        **overrides,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A verified USER with no organization."""
    return await _make_user(db_session, "test@example.com", "Test User")


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin@digikite.in", "Admin User", UserRole.ADMIN)


@pytest.fixture
async def super_admin_user(db_session: AsyncSession) -> User:
    return await _make_user(
        db_session, "superadmin@digikite.in", "Super Admin", UserRole.SUPER_ADMIN
    )


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return bearer(test_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return bearer(admin_user)


@pytest.fixture
def super_admin_headers(super_admin_user: User) -> dict:
    return bearer(super_admin_user)


# ============================================================================
# Billing fixtures
# ============================================================================


@pytest.fixture
async def plans(db_session: AsyncSession) -> dict[str, SubscriptionPlan]:
    """The default plan catalog, keyed by code."""
    await seed_default_plans(db_session)
    result = await db_session.execute(select(SubscriptionPlan))
    return {plan.code: plan for plan in result.scalars().all()}


@pytest.fixture
async def starter_plan(plans: dict[str, SubscriptionPlan]) -> SubscriptionPlan:
    return plans["STARTER"]


@pytest.fixture
async def client_org(db_session: AsyncSession) -> ClientOrganization:
    client = ClientOrganization(
        name="Springfield Alumni Association",
        short_name="SAA",
        contact_email="office@springfield.edu",
        contact_phone="+91 98765 43210",
        address="742 Evergreen Terrace",
        status=ClientStatus.PENDING.value,
    )
    db_session.add(client)
    await db_session.commit()
    await db_session.refresh(client)
    return client


@pytest.fixture
async def trial_subscription(
    db_session: AsyncSession,
    client_org: ClientOrganization,
    starter_plan: SubscriptionPlan,
) -> Subscription:
    """A MONTHLY Starter subscription in TRIAL that started today."""
    subscription = build_subscription(client_org, starter_plan, BillingCycle.MONTHLY)
    db_session.add(subscription)
    await db_session.commit()
    await db_session.refresh(subscription)
    return subscription


@pytest.fixture
async def active_subscription(
    db_session: AsyncSession, trial_subscription: Subscription
) -> Subscription:
    trial_subscription.status = SubscriptionStatus.ACTIVE.value
    trial_subscription.last_renewal_at = datetime.now(UTC)
    await db_session.commit()
    return trial_subscription


@pytest.fixture
async def portal_user(db_session: AsyncSession, client_org: ClientOrganization) -> User:
    """Staff member of ``client_org``."""
    return await _make_user(
        db_session, "registrar@springfield.edu", "Registrar", client=client_org
    )


@pytest.fixture
def portal_headers(portal_user: User) -> dict:
    return bearer(portal_user)


@pytest.fixture
def sign_checkout():
    """Compute a Checkout signature the way Razorpay does."""
    return razorpay_signature


@pytest.fixture
def sign_webhook():
    return webhook_signature


@pytest.fixture
def headers_for():
    """Build Bearer headers for any user."""
    return bearer


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here so the environment above is applied first
    from main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
