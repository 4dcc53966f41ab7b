"""Pytest configuration and fixtures."""

import asyncio
import os
from collections.abc import AsyncGenerator

# Set test environment variables before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OPENAI_API_KEY", "sk-test-key-for-testing")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cqas.api.dependencies import get_evaluator
from cqas.config import Settings
from cqas.database import Base, build_engine, build_session_maker, get_db
from cqas.engine.evaluator import RubricEvaluator
from cqas.errors import ConfigurationError
from cqas.main import app
from cqas.storage.repositories import create_behavior, create_call


class FakeJudge:
    """
    Stands in for OpenAIJudge. `responses` maps behavior name to the raw answer,
    an exception to raise, or a list of those consumed one per attempt.
    `arrived` is set on every call; when `hold` is given each call waits for it.
    """

    def __init__(self, responses: dict | None = None, default: str | None = None):
        self.responses = responses or {}
        self.default = default or '{"evaluation": "compliant", "comments": "All criteria were met."}'
        self.calls: list[str] = []
        self.transcripts: list[str] = []
        self.configured = True
        self.arrived: asyncio.Event | None = None
        self.hold: asyncio.Event | None = None

    def check_configured(self):
        if not self.configured:
            raise ConfigurationError("OpenAI API key is not configured")

    async def evaluate(self, system_instructions, rubric_name, description, criteria_text, transcript_text):
        self.calls.append(rubric_name)
        self.transcripts.append(transcript_text)
        if self.arrived is not None:
            self.arrived.set()
        if self.hold is not None:
            await self.hold.wait()
        response = self.responses.get(rubric_name, self.default)
        if isinstance(response, list):
            response = response.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        openai_api_key="sk-test-key-for-testing",
        llm_timeout_seconds=1.0,
        llm_max_retries=1,
        evaluation_concurrency=1,
    )


@pytest.fixture
def judge() -> FakeJudge:
    return FakeJudge()


@pytest.fixture
def make_judge():
    """Factory for extra fake judges, for tests that need more than one."""
    return FakeJudge


@pytest.fixture
def evaluator(judge: FakeJudge, settings: Settings) -> RubricEvaluator:
    return RubricEvaluator(judge, settings)


@pytest.fixture
async def engine(tmp_path, settings):
    """File-backed SQLite per test, with working SAVEPOINT support."""
    db_settings = settings.model_copy(update={"database_url": f"sqlite+aiosqlite:///{tmp_path / 'cqas.db'}"})
    test_engine = build_engine(db_settings)

    @event.listens_for(test_engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        # let SQLAlchemy emit BEGIN itself so savepoints nest correctly
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(engine)


@pytest.fixture
async def db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker, evaluator) -> AsyncGenerator[AsyncClient, None]:
    """API client wired to the test database and the fake judge."""

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_evaluator] = lambda: evaluator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_behavior(db: AsyncSession):
    """Factory for committed behaviors."""

    async def _make(name: str, prompt: str = "The agent must do it.", **kwargs):
        behavior = await create_behavior(db, name=name, prompt=prompt, **kwargs)
        await db.commit()
        return behavior

    return _make


@pytest.fixture
def make_call(db: AsyncSession):
    """Factory for committed calls. Uses a two-segment transcript unless told otherwise."""

    async def _make(transcription=..., title: str = "Test call"):
        if transcription is ...:
            transcription = [
                {"speaker": "Agent", "text": "Good morning, how can I help?", "start": 0.0, "end": 2.0},
                {"speaker": "Customer", "text": "I want to change my plan.", "start": 2.1, "end": 4.0},
            ]
        call = await create_call(db, title=title, transcription=transcription)
        await db.commit()
        return call

    return _make
