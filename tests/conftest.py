import os
import tempfile

# Settings are read at import time, so the environment is prepared first
_TMP_DIR = tempfile.mkdtemp(prefix="testgen-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/app.db"
os.environ["SYNTHESIS_RETRY_BACKOFF_SECONDS"] = "0"
os.environ["RATE_LIMIT_SWEEP_INTERVAL_SECONDS"] = "0"
os.environ["DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from testgen.core.database import create_tables, get_database
from testgen.core.dependencies import (
    get_generation_orchestrator,
    get_language_model,
    get_rate_limiter,
)
from testgen.core.rate_limiter import RateLimiter
from testgen.models.database import Base
from testgen.models.schemas import ChangedFile
from testgen.repositories.implementations.sql_generation_history_repository import SQLGenerationHistoryRepository
from testgen.repositories.implementations.sql_test_case_repository import SQLTestCaseRepository
from testgen.services.behavior_analyzer import BehaviorAnalyzer
from testgen.services.generation_orchestrator import GenerationOrchestrator
from testgen.services.test_case_synthesizer import TestCaseSynthesizer
from tests.fakes import FakeJiraService, FakeLanguageModel, FakeReviewSource, java_file, make_ticket


@pytest.fixture
def db_session(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    create_tables(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def test_case_repository(db_session):
    return SQLTestCaseRepository(db_session)


@pytest.fixture
def history_repository(db_session):
    return SQLGenerationHistoryRepository(db_session, retention_days=90)


@pytest.fixture
def language_model():
    return FakeLanguageModel()


@pytest.fixture
def jira_service():
    return FakeJiraService({"PROJ-1": make_ticket()})


@pytest.fixture
def review_source():
    return FakeReviewSource(
        {
            ("acme", "mobile", 1): [java_file(), ChangedFile(path="README.md", status="modified", raw_patch="+docs")],
            ("acme", "mobile", 2): [java_file("src/main/java/Profile.java")],
        }
    )


@pytest.fixture
def orchestrator(language_model, jira_service, review_source, test_case_repository, history_repository):
    return GenerationOrchestrator(
        jira_service=jira_service,
        review_source=review_source,
        analyzer=BehaviorAnalyzer(language_model),
        synthesizer=TestCaseSynthesizer(language_model, max_attempts=2, backoff_seconds=0),
        test_case_repository=test_case_repository,
        history_repository=history_repository,
    )


@pytest.fixture
def rate_limiter():
    limiter = RateLimiter(max_requests=10, window_seconds=60, sweep_interval_seconds=None)
    yield limiter
    limiter.stop()


@pytest.fixture
def test_client(db_session, orchestrator, language_model, rate_limiter):
    """Synchronous test client wired to the fakes and a temporary database"""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_database] = override_get_db
    app.dependency_overrides[get_generation_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_language_model] = lambda: language_model
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    yield TestClient(app)
    app.dependency_overrides.clear()
