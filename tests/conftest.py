"""Pytest configuration and fixtures."""

import datetime as dt
import itertools
import os

# Set test environment before importing the app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from trainerflow.db.session import get_session
from trainerflow.domain.graph import FlowGraph
from trainerflow.domain.ids import sequential_ids
from trainerflow.main import app
from trainerflow.models import Base
from trainerflow.services.session_runtime import SessionRuntime


def build_graph(nodes, edges, **settings) -> FlowGraph:
    return FlowGraph.model_validate(
        {"nodes": nodes, "edges": edges, "settings": settings}
    )


@pytest.fixture
def graph_factory():
    """Build a FlowGraph from wire-shaped node / edge dicts."""
    return build_graph


@pytest.fixture
def training_graph() -> FlowGraph:
    """
    start -> intro -> question --yes--> end
                               --no---> review -> end
    """
    return build_graph(
        nodes=[
            {"id": "n1", "type": "start", "label": "Start", "data": {"messages": ["Hello"]}},
            {"id": "n2", "type": "text", "label": "Intro", "data": {"messages": ["Intro"]}},
            {
                "id": "n3",
                "type": "question",
                "label": "Check",
                "data": {
                    "messages": ["Do you understand?"],
                    "keywords": ["yes", "no"],
                    "errorMessage": "Please answer yes or no.",
                },
            },
            {"id": "n4", "type": "feedback", "label": "Review", "data": {"messages": ["Recap"]}},
            {"id": "n5", "type": "end", "label": "End", "data": {"messages": ["Done!"]}},
        ],
        edges=[
            {"id": "e1", "from": "n1", "to": "n2", "condition": {"type": "auto"}},
            {"id": "e2", "from": "n2", "to": "n3", "condition": {"type": "auto"}},
            {"id": "e3", "from": "n3", "to": "n5", "condition": {"type": "question", "keywords": ["yes"]}},
            {"id": "e4", "from": "n3", "to": "n4", "condition": {"type": "question", "keywords": ["no"]}},
            {"id": "e5", "from": "n4", "to": "n5", "condition": {"type": "auto"}},
        ],
    )


@pytest.fixture
def fixed_clock():
    ticks = itertools.count()
    base = dt.datetime(2026, 1, 1, tzinfo=dt.timezone.utc)
    return lambda: base + dt.timedelta(seconds=next(ticks))


@pytest.fixture
def runtime(fixed_clock):
    return SessionRuntime(
        id_factory=sequential_ids(),
        clock=fixed_clock,
        completed_message="Session completed.",
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    async def _override_get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as async_client:
        yield async_client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def file_session_maker(tmp_path):
    """Sessions with their own connections to one on-disk database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'trainerflow.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()
