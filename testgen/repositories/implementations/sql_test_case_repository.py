from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import structlog
from testgen.repositories.interfaces.test_case_repository import ITestCaseRepository
from testgen.models.database import TestCaseDocumentModel
from testgen.models.schemas import TestCaseDocument
from testgen.core.exceptions import PersistenceError

logger = structlog.get_logger()


class SQLTestCaseRepository(ITestCaseRepository):
    """SQLAlchemy implementation of test case document repository"""

    def __init__(self, db: Session):
        self.db = db

    async def create(self, document: TestCaseDocument) -> TestCaseDocument:
        """Persist the test cases of one generation"""
        db_document = TestCaseDocumentModel(
            generation_id=document.generation_id,
            jira_ticket_id=document.jira_ticket_id,
            jira_ticket_key=document.jira_ticket_key,
            summary=document.summary,
            description=document.description,
            test_cases=[tc.model_dump(mode="json", by_alias=True) for tc in document.test_cases],
            model_used=document.model_used,
            generation_time_ms=document.generation_time_ms,
            status=document.status,
        )
        try:
            self.db.add(db_document)
            self.db.commit()
            self.db.refresh(db_document)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to save test case document", generation_id=document.generation_id, error=str(e))
            raise PersistenceError("Failed to save generated test cases", operation="create_test_case_document") from e
        return TestCaseDocument.model_validate(db_document)

    async def get_by_generation_id(self, generation_id: str) -> Optional[TestCaseDocument]:
        db_document = (
            self.db.query(TestCaseDocumentModel)
            .filter(TestCaseDocumentModel.generation_id == generation_id)
            .first()
        )
        if db_document:
            return TestCaseDocument.model_validate(db_document)
        return None

    async def get_by_ticket_key(self, ticket_key: str, limit: int = 10) -> List[TestCaseDocument]:
        """Most recent documents for a ticket, newest first"""
        db_documents = (
            self.db.query(TestCaseDocumentModel)
            .filter(TestCaseDocumentModel.jira_ticket_key == ticket_key)
            .order_by(TestCaseDocumentModel.created_at.desc(), TestCaseDocumentModel.id.desc())
            .limit(limit)
            .all()
        )
        return [TestCaseDocument.model_validate(doc) for doc in db_documents]
