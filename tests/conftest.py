"""Shared fixtures: in-memory database, controllable clock, users and an API client."""

from datetime import datetime, timedelta, timezone
from itertools import count
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.config import Role
from src.infrastructure.database import Base, get_session
from src.shared.infrastructure.clock import get_clock
from src.sla.domain import SLAEvaluator
from src.tickets.application import TicketService
from src.tickets.infrastructure import (
    SQLAlchemyCommentRepository,
    SQLAlchemyTicketRepository,
    SQLAlchemyUserRepository,
    UserModel,
)
from src.tickets.infrastructure.repositories import user_to_domain

START = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create test database session."""
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_user(db_session):
    """Insert a user and return it as a Principal; users are stored in creation order."""
    sequence = count()

    async def _make(role: Role = Role.USER, name: str = None, is_active: bool = True):
        n = next(sequence)
        user_id = uuid4()
        model = UserModel(
            id=user_id,
            name=name or f"{role.value.title()} {n}",
            email=f"{role.value}{n}-{user_id.hex[:6]}@example.com",
            role=role.value,
            is_active=is_active,
            created_at=START - timedelta(days=1) + timedelta(seconds=n),
        )
        db_session.add(model)
        await db_session.flush()
        return user_to_domain(model)

    return _make


@pytest.fixture
def ticket_service(db_session, clock):
    return TicketService(
        ticket_repository=SQLAlchemyTicketRepository(db_session),
        comment_repository=SQLAlchemyCommentRepository(db_session),
        user_repository=SQLAlchemyUserRepository(db_session),
        evaluator=SLAEvaluator(),
        clock=clock,
    )


@pytest_asyncio.fixture
async def async_client(db_session, clock):
    """Create async test client bound to the test session and clock."""
    from src.main import app

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    """Headers identifying ``principal`` the way the gateway does."""

    def _headers(principal) -> dict:
        return {"X-User-ID": str(principal.id)}

    return _headers
