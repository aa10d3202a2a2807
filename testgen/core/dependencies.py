from fastapi import Depends
from sqlalchemy.orm import Session
from testgen.config.settings import settings
from testgen.core.database import get_database
from testgen.core.rate_limiter import RateLimiter
from testgen.repositories.interfaces.test_case_repository import ITestCaseRepository
from testgen.repositories.interfaces.generation_history_repository import IGenerationHistoryRepository
from testgen.repositories.interfaces.language_model import ILanguageModelService
from testgen.repositories.interfaces.jira_service import IJiraService
from testgen.repositories.interfaces.review_source import IReviewSource

from testgen.repositories.implementations.sql_test_case_repository import SQLTestCaseRepository
from testgen.repositories.implementations.sql_generation_history_repository import SQLGenerationHistoryRepository
from testgen.repositories.implementations.ollama_service import OllamaService
from testgen.repositories.implementations.jira_service import AtlassianJiraService
from testgen.repositories.implementations.github_review_source import GitHubReviewSource

from testgen.services.behavior_analyzer import BehaviorAnalyzer
from testgen.services.test_case_synthesizer import TestCaseSynthesizer
from testgen.services.generation_orchestrator import GenerationOrchestrator


class Container:
    """Dependency injection container"""

    def __init__(self):
        self._language_model = None
        self._jira_service = None
        self._review_source = None
        self._rate_limiter = None
        self._behavior_analyzer = None
        self._test_case_synthesizer = None

    def test_case_repository(self, db: Session) -> ITestCaseRepository:
        """Get test case repository instance"""
        return SQLTestCaseRepository(db)

    def generation_history_repository(self, db: Session) -> IGenerationHistoryRepository:
        """Get generation history repository instance"""
        return SQLGenerationHistoryRepository(db)

    def language_model(self) -> ILanguageModelService:
        """Get model backend instance (singleton)"""
        if self._language_model is None:
            self._language_model = OllamaService()
        return self._language_model

    def jira_service(self) -> IJiraService:
        """Get JIRA service instance (singleton)"""
        if self._jira_service is None:
            self._jira_service = AtlassianJiraService()
        return self._jira_service

    def review_source(self) -> IReviewSource:
        """Get code review source instance (singleton)"""
        if self._review_source is None:
            self._review_source = GitHubReviewSource()
        return self._review_source

    def rate_limiter(self) -> RateLimiter:
        """Get rate limiter instance (singleton)"""
        if self._rate_limiter is None:
            self._rate_limiter = RateLimiter(
                max_requests=settings.rate_limit_max_requests,
                window_seconds=settings.rate_limit_window_seconds,
                sweep_interval_seconds=settings.rate_limit_sweep_interval_seconds,
            )
        return self._rate_limiter

    def behavior_analyzer(self) -> BehaviorAnalyzer:
        if self._behavior_analyzer is None:
            self._behavior_analyzer = BehaviorAnalyzer(self.language_model())
        return self._behavior_analyzer

    def test_case_synthesizer(self) -> TestCaseSynthesizer:
        if self._test_case_synthesizer is None:
            self._test_case_synthesizer = TestCaseSynthesizer(self.language_model())
        return self._test_case_synthesizer

    def generation_orchestrator(self, db: Session) -> GenerationOrchestrator:
        """Get generation orchestrator bound to one database session"""
        return GenerationOrchestrator(
            jira_service=self.jira_service(),
            review_source=self.review_source(),
            analyzer=self.behavior_analyzer(),
            synthesizer=self.test_case_synthesizer(),
            test_case_repository=self.test_case_repository(db),
            history_repository=self.generation_history_repository(db),
        )

    def shutdown(self) -> None:
        if self._rate_limiter is not None:
            self._rate_limiter.stop()


# Global container instance
container = Container()


# Dependency providers for FastAPI
def get_test_case_repository(db: Session = Depends(get_database)) -> ITestCaseRepository:
    """FastAPI dependency for test case repository"""
    return container.test_case_repository(db)


def get_generation_history_repository(db: Session = Depends(get_database)) -> IGenerationHistoryRepository:
    """FastAPI dependency for generation history repository"""
    return container.generation_history_repository(db)


def get_language_model() -> ILanguageModelService:
    """FastAPI dependency for the model backend"""
    return container.language_model()


def get_rate_limiter() -> RateLimiter:
    """FastAPI dependency for the rate limiter"""
    return container.rate_limiter()


def get_generation_orchestrator(db: Session = Depends(get_database)) -> GenerationOrchestrator:
    """FastAPI dependency for the generation orchestrator"""
    return container.generation_orchestrator(db)
