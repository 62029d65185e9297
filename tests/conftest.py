"""
Pytest configuration and fixtures
"""
import os

# Before any contest_judge import: the module-level engine reads this
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from contest_judge.infrastructure.persistence.models import (
    Competition,
    CompetitionProblem,
    CompetitionStatusEnum,
)
from contest_judge.infrastructure.persistence.session import (
    create_engine,
    create_session_factory,
    init_db,
)


@pytest.fixture(autouse=True)
def setup_env(monkeypatch):
    """Test environment variables"""
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("POSTGRES_HOST", "localhost")
    monkeypatch.setenv("REDIS_HOST", "localhost")
    monkeypatch.delenv("JUDGE0_API_URL", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)


class FakeClock:
    """Settable clock for window tests"""

    def __init__(self, now: datetime = datetime(2024, 5, 1, 9, 0, 0)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database per test"""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_competition(session_factory):
    """Insert a competition with problems; returns (competition_id, [problem_id, ...])"""

    async def _make(problems=None, **competition_fields):
        fields = {
            "title": "Weekly Contest",
            "status": CompetitionStatusEnum.ONGOING,
            "duration": 90,
            "max_participants": 100,
            "current_participants": 0,
        }
        fields.update(competition_fields)

        async with session_factory() as session:
            competition = Competition(**fields)
            session.add(competition)
            await session.flush()

            problem_ids = []
            for problem_fields in problems or [{}]:
                problem = CompetitionProblem(
                    competition_id=competition.id,
                    title=problem_fields.get("title", "A + B"),
                    points=problem_fields.get("points", 100),
                    time_limit=problem_fields.get("time_limit"),
                    memory_limit=problem_fields.get("memory_limit"),
                    test_cases_visible=problem_fields.get("test_cases_visible"),
                    test_cases_hidden=problem_fields.get("test_cases_hidden"),
                )
                session.add(problem)
                await session.flush()
                problem_ids.append(problem.id)

            await session.commit()
            return competition.id, problem_ids

    return _make
