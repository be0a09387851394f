import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import models  # noqa: F401
from database import Base, get_db
from main import app
from services.artist_analysis import AnalysisOrchestrator, get_orchestrator
from services.collector import PlatformCollector
from services.insights import InsightSynthesizer
from services.progress_store import InMemoryProgressStore


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "artist_ai.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker
    await engine.dispose()


@pytest_asyncio.fixture
async def build_orchestrator(session_maker):
    """Factory for orchestrators wired to fallback data and a temp database."""
    created = []

    def _build(**overrides):
        options = {
            "progress_store": InMemoryProgressStore(),
            "collector": PlatformCollector({}),
            "synthesizer": InsightSynthesizer(api_key=""),
            "session_maker": session_maker,
            "retention_seconds": 300,
            "connect_delay_seconds": 0,
        }
        options.update(overrides)
        orchestrator = AnalysisOrchestrator(**options)
        created.append(orchestrator)
        return orchestrator

    yield _build

    for orchestrator in created:
        await orchestrator.shutdown(grace_seconds=5)


@pytest_asyncio.fixture
async def api_client(session_maker, build_orchestrator):
    orchestrator = build_orchestrator()

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client, orchestrator

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_orchestrator, None)
