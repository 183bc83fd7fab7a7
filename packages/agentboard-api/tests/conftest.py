"""Test fixtures and configuration."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from agentboard.config import Settings
from agentboard.dependencies import get_db
from agentboard.main import create_app, create_relay_app
from agentboard.models import Base
from agentboard.schemas.agent import AgentSession
from agentboard.schemas.alert import AlertChannel, AlertPayload
from agentboard.services.channels import NotificationChannel
from agentboard.sources.base import DataSource, FetchResult


class FakeClock:
    """Callable wall clock in seconds that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource(DataSource):
    """Source whose output and failure are set directly by the test."""

    def __init__(
        self,
        source_id: str,
        agents: list[AgentSession] | None = None,
        *,
        name: str | None = None,
        group: str = "both",
        error: Exception | None = None,
        activities: list | None = None,
        conversations: dict | None = None,
        conversation_paths: dict[str, str] | None = None,
    ) -> None:
        super().__init__()
        self.id = source_id
        self.name = name or source_id.title()
        self.group = group
        self.agents = agents or []
        self.error = error
        self.activities = activities or []
        self.conversations = conversations or {}
        self.conversation_paths.update(conversation_paths or {})
        self.fetch_count = 0

    async def fetch(self) -> FetchResult:
        self.fetch_count += 1
        if self.error is not None:
            raise self.error
        return FetchResult(
            agents=[a.model_copy(deep=True) for a in self.agents],
            activities=[item.model_copy() for item in self.activities],
        )

    async def conversation_history(self, agent_id: str):
        return self.conversations.get(agent_id, [])


class RecordingChannel(NotificationChannel):
    """Channel that records payloads instead of delivering them."""

    def __init__(self, channel: AlertChannel, error: Exception | None = None) -> None:
        super().__init__()
        self.channel = channel
        self.error = error
        self.sent: list[AlertPayload] = []

    @property
    def configured(self) -> bool:
        return True

    async def send(self, payload: AlertPayload) -> bool:
        self.sent.append(payload)
        if self.error is not None:
            raise self.error
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_source():
    """Factory for FakeSource instances: ``make_source("alpha", [agent])``."""
    return FakeSource


@pytest.fixture
def make_channel():
    """Factory for RecordingChannel instances."""
    return RecordingChannel


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        environment="test",
        primary_source="both",
        thin_source_ids=["thin"],
        rich_source_ids=["rich"],
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    """Monitor app with one fake source reporting a single running agent."""
    source = FakeSource(
        "alpha",
        [AgentSession(id="a-1", name="Alpha one", status="running", tokens=1200)],
    )
    return create_app(settings, data_sources=[source])


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_engine():
    """Create an in-memory SQLite engine for relay tests."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session bound to the test engine."""
    factory = async_sessionmaker(
        bind=db_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with factory() as session:
        yield session


@pytest.fixture
def relay_settings() -> Settings:
    return Settings(_env_file=None, environment="test", relay_auth_token="relay-secret")


@pytest_asyncio.fixture
async def relay_app(relay_settings: Settings, db_engine) -> FastAPI:
    """Relay app with the DB dependency bound to the in-memory engine."""
    factory = async_sessionmaker(
        bind=db_engine, class_=AsyncSession, expire_on_commit=False
    )

    async def override_get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    relay = create_relay_app(relay_settings)
    relay.dependency_overrides[get_db] = override_get_db
    return relay


@pytest_asyncio.fixture
async def relay_client(relay_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=relay_app)
    async with AsyncClient(transport=transport, base_url="http://relay.test") as ac:
        yield ac
