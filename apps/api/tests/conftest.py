"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database with savepoint isolation (rollback after each test)
- Agent, user and listing factories
- JWT session minting and HTTPX AsyncClient helpers
"""
import os
import uuid
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncGenerator, Generator

# Must be set before the app (and its settings) are imported
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EMAIL_API_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app.core.deps import COOKIE_NAME, CSRF_HEADER, CSRF_HEADER_VALUE, get_db
from app.core.rate_limit import limiter
from app.core.security import create_session_token
from app.db.base import Base
from app.db.enums import Role
from app.db.models import Property, User
from app.db.session import SessionLocal
from app.main import app


def make_sqlite_engine(url: str = "sqlite://", **kwargs):
    """
    SQLite engine with working SAVEPOINT support.

    pysqlite issues its own BEGIN lazily, which breaks nested transactions;
    disable that and emit BEGIN ourselves.
    """
    engine = create_engine(url, connect_args={"check_same_thread": False}, **kwargs)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


test_engine = make_sqlite_engine(poolclass=StaticPool)
Base.metadata.create_all(test_engine)


# =============================================================================
# Database Fixtures (Savepoint pattern)
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session with savepoint for test isolation.

    Service code can call commit()/rollback() freely; those act on a
    SAVEPOINT inside the outer transaction, which is rolled back at the end.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Rate limit counters are process-wide; start every test from zero."""
    limiter.reset()
    yield


# =============================================================================
# Factories
# =============================================================================

def create_user(db: Session, role: Role = Role.USER, **overrides) -> User:
    """Create and commit a user; agents are users with an agent-capable role."""
    suffix = uuid.uuid4().hex[:8]
    fields = {
        "id": uuid.uuid4(),
        "email": f"user-{suffix}@test.com",
        "name": f"User {suffix}",
        "phone_number": f"+1555{uuid.uuid4().int % 10_000_000:07d}",
        "role": role.value,
        "token_version": 1,
        "is_active": True,
    }
    fields.update(overrides)
    user = User(**fields)
    db.add(user)
    db.commit()
    return user


def create_property(db: Session, agent: User | None, **overrides) -> Property:
    """Create and commit a listing assigned to ``agent``."""
    fields = {
        "id": uuid.uuid4(),
        "title": "Sunny two-bedroom apartment",
        "price": Decimal("250000.00"),
        "images": ["https://cdn.test/listing-1.jpg"],
        "agent_id": agent.id if agent else None,
    }
    fields.update(overrides)
    listing = Property(**fields)
    db.add(listing)
    db.commit()
    return listing


@pytest.fixture
def agent(db: Session) -> User:
    return create_user(db, Role.ADMIN, name="Agent A")


@pytest.fixture
def other_agent(db: Session) -> User:
    return create_user(db, Role.ADMIN, name="Agent B")


@pytest.fixture
def superadmin(db: Session) -> User:
    return create_user(db, Role.SUPERADMIN, name="Super Admin")


@pytest.fixture
def client_user(db: Session) -> User:
    return create_user(db, Role.USER, email="buyer@test.com", name="Buyer")


@pytest.fixture
def listing(db: Session, agent: User) -> Property:
    return create_property(db, agent)


# =============================================================================
# Auth / Client Fixtures
# =============================================================================

def session_cookie(user: User) -> dict[str, str]:
    """Session cookie for ``user``."""
    token = create_session_token(
        user_id=user.id,
        role=user.role,
        token_version=user.token_version,
    )
    return {COOKIE_NAME: token}


@asynccontextmanager
async def api_client(
    db: Session,
    user: User | None = None,
    csrf: bool = True,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient bound to the test session, optionally authenticated as ``user``."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    headers = {CSRF_HEADER: CSRF_HEADER_VALUE} if csrf else {}
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=session_cookie(user) if user else None,
        headers=headers,
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient for public endpoints."""
    async with api_client(db) as c:
        yield c


@pytest.fixture(scope="function")
async def admin_client(db: Session, agent: User) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient authenticated as an admin agent, with CSRF header."""
    async with api_client(db, agent) as c:
        yield c


@pytest.fixture(scope="function")
async def superadmin_client(db: Session, superadmin: User) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient authenticated as a superadmin, with CSRF header."""
    async with api_client(db, superadmin) as c:
        yield c
