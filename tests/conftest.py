"""
Pytest fixtures for rehab-plan-api tests.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Generator, List

import pytest
from fastapi.testclient import TestClient

from api.deps import get_current_user, get_engine, get_today
from backend.main import create_app
from backend.settings import Settings
from services.dedup_cache import DeduplicationCache
from services.program_locks import ProgramLockRegistry
from services.rehab_engine import RehabEngine
from tests.fakes import (
    FakeCatalogRepository,
    FakeLogRepository,
    FakePlanAugmenter,
    FakePlanRepository,
    FakeProfileRepository,
    FakeProgramRepository,
    FakeUserRepository,
)


# ---------------------------------------------------------------------------
# Auth Mock
# ---------------------------------------------------------------------------

TEST_USER_ID = "test-user-123"
OTHER_USER_ID = "other-user-456"

TODAY = date(2025, 3, 10)


async def mock_get_current_user() -> str:
    """Mock auth dependency that returns a test user."""
    return TEST_USER_ID


# ---------------------------------------------------------------------------
# Mock Environment Variables
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Set mock environment variables for tests."""
    monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "test-supabase-key")
    monkeypatch.setenv("ENVIRONMENT", "test")


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Settable UTC clock; each call advances by one second."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Fake Repository Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def profile_repo() -> FakeProfileRepository:
    return FakeProfileRepository()


@pytest.fixture
def program_repo() -> FakeProgramRepository:
    return FakeProgramRepository()


@pytest.fixture
def log_repo() -> FakeLogRepository:
    return FakeLogRepository()


@pytest.fixture
def plan_repo() -> FakePlanRepository:
    return FakePlanRepository()


@pytest.fixture
def user_repo() -> FakeUserRepository:
    return FakeUserRepository()


@pytest.fixture
def catalog_repo() -> FakeCatalogRepository:
    return FakeCatalogRepository()


@pytest.fixture
def augmenter() -> FakePlanAugmenter:
    return FakePlanAugmenter()


@pytest.fixture
def dedup_cache() -> DeduplicationCache:
    cache = DeduplicationCache(ttl_seconds=300)
    yield cache
    cache.clear()


@pytest.fixture
def program_locks() -> ProgramLockRegistry:
    return ProgramLockRegistry()


@pytest.fixture
def make_engine(
    profile_repo,
    program_repo,
    log_repo,
    plan_repo,
    user_repo,
    catalog_repo,
    dedup_cache,
    program_locks,
    clock,
) -> Generator[Callable[..., RehabEngine], None, None]:
    """Factory for engines over the shared fake repositories."""
    engines: List[RehabEngine] = []

    def factory(augmenter=None, **kwargs: Any) -> RehabEngine:
        engine = RehabEngine(
            profile_repo=profile_repo,
            program_repo=program_repo,
            log_repo=log_repo,
            plan_repo=plan_repo,
            user_repo=user_repo,
            catalog_repo=catalog_repo,
            augmenter=augmenter or FakePlanAugmenter(),
            cache=kwargs.pop("cache", dedup_cache),
            clock=kwargs.pop("clock", clock),
            locks=kwargs.pop("locks", program_locks),
            **kwargs,
        )
        engines.append(engine)
        return engine

    yield factory
    for engine in engines:
        engine.shutdown()


@pytest.fixture
def engine(make_engine, augmenter) -> RehabEngine:
    return make_engine(augmenter=augmenter)


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_onboarding() -> Dict[str, Any]:
    """Onboarding answers that suggest rehab with medium risk."""
    return {
        "area": "knee",
        "side": "left",
        "onset": "recent",
        "pain_rest": 5,
        "pain_activity": 7,
        "stiffness": 4,
        "red_flags": [],
        "aggravators": ["stairs"],
        "easers": ["rest"],
        "goal": "Walk without pain",
    }


@pytest.fixture
def active_program(program_repo) -> Dict[str, Any]:
    """An active knee program for the test user, started a month ago."""
    return program_repo.create({
        "user_id": TEST_USER_ID,
        "area": "knee",
        "side": "left",
        "status": "active",
        "start_date": (TODAY - timedelta(days=30)).isoformat(),
        "metadata": {"risk_level": "medium", "goal": "Walk without pain"},
    })


@pytest.fixture
def seed_log(log_repo, active_program) -> Callable[..., Dict[str, Any]]:
    """Insert a log for the active program ``days_ago`` before TODAY."""

    def factory(days_ago: int, pain: int = 4, stiffness: int = 3, **fields: Any) -> Dict[str, Any]:
        return log_repo.seed([{
            "user_id": TEST_USER_ID,
            "program_id": active_program["id"],
            "log_date": (TODAY - timedelta(days=days_ago)).isoformat(),
            "pain": pain,
            "stiffness": stiffness,
            **fields,
        }])[0]

    return factory


# ---------------------------------------------------------------------------
# Test App and Client
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with minimal configuration."""
    return Settings(
        environment="test",
        supabase_url="https://test.supabase.co",
        supabase_service_role_key="test-key",
        _env_file=None,
    )


@pytest.fixture
def app(test_settings):
    """Create test application instance."""
    return create_app(settings=test_settings)


@pytest.fixture
def client(app, engine) -> Generator[TestClient, None, None]:
    """
    Per-test FastAPI TestClient wired to an engine over fake repositories.
    Properly cleans up dependency overrides after each test.
    """
    app.dependency_overrides[get_current_user] = mock_get_current_user
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_today] = lambda: TODAY
    yield TestClient(app)
    app.dependency_overrides.clear()
