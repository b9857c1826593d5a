"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database with savepoint isolation (rollback after each test)
- Organization/user/membership fixtures and JWT minting for staff tests
- HTTPX AsyncClient fixtures for public and staff endpoints
- A trust gate with a controllable clock for allowed-origin caching
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

# Settings are read at import time; configure before importing the app.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["RESEND_API_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.core.cache import TTLCache
from app.core.config import settings
from app.core.deps import get_db
from app.core.rate_limit import limiter
from app.core.security import create_session_token, generate_public_key
from app.db.base import Base
from app.db.enums import Role
from app.db.models import Membership, Organization, User
from app.db.session import configure_sqlite
from app.main import app
from app.services.trust_gate import TrustGate, get_trust_gate


# =============================================================================
# Database Fixtures (Savepoint pattern)
# =============================================================================

@pytest.fixture(scope="session")
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(test_engine)
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    """
    Session joined to an outer transaction that is rolled back after the test.

    App code can commit() and rollback(); each only ends a SAVEPOINT.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        autoflush=False,
    )

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Rate limit counters are process-wide; start every test with a clean budget."""
    limiter.reset()
    yield


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="function")
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="function")
def trust_gate(clock: FakeClock) -> TrustGate:
    return TrustGate(
        TTLCache(settings.ALLOWED_ORIGINS_CACHE_TTL_SECONDS, clock=clock),
        allow_no_origin_writes=False,
    )


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    """Create a test organization (no allowed origins)."""
    org = Organization(
        id=uuid.uuid4(),
        name="Test Organization",
        slug=f"test-org-{uuid.uuid4().hex[:8]}",
        public_key=generate_public_key(),
    )
    db.add(org)
    db.commit()
    return org


def _make_member(db: Session, org: Organization, role: Role) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"test-{uuid.uuid4().hex[:8]}@test.com",
        display_name="Test User",
    )
    db.add(user)
    db.flush()
    db.add(
        Membership(
            id=uuid.uuid4(),
            user_id=user.id,
            organization_id=org.id,
            role=role.value,
        )
    )
    db.commit()
    return user


@pytest.fixture(scope="function")
def test_user(db: Session, test_org: Organization) -> User:
    """Create a test user with admin membership in test_org."""
    return _make_member(db, test_org, Role.ADMIN)


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    org: Organization
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def make_auth(user: User, org: Organization, role: Role) -> TestAuth:
    token = create_session_token(
        user_id=user.id,
        org_id=org.id,
        role=role.value,
        token_version=user.token_version,
    )
    return TestAuth(user=user, org=org, token=token)


@pytest.fixture(scope="function")
def test_auth(test_user: User, test_org: Organization) -> TestAuth:
    """Create JWT token for test user."""
    return make_auth(test_user, test_org, Role.ADMIN)


@pytest.fixture(scope="function")
def viewer_auth(db: Session, test_org: Organization) -> TestAuth:
    user = _make_member(db, test_org, Role.VIEWER)
    return make_auth(user, test_org, Role.VIEWER)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session, trust_gate: TrustGate) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_trust_gate] = lambda: trust_gate

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    trust_gate: TrustGate,
    test_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create authenticated AsyncClient with a staff bearer token.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_trust_gate] = lambda: trust_gate

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=test_auth.headers,
    ) as c:
        yield c

    app.dependency_overrides.clear()
