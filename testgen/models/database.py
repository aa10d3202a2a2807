from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, JSON, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
from datetime import datetime, timezone
from testgen.models.schemas import GenerationOutcome, TestCaseDocumentStatus

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TestCaseDocumentModel(Base):
    __tablename__ = "test_case_documents"
    __test__ = False

    id = Column(Integer, primary_key=True, index=True)
    generation_id = Column(String(64), nullable=False, unique=True, index=True)
    jira_ticket_id = Column(String(50), nullable=False, index=True)
    jira_ticket_key = Column(String(50), nullable=False)
    summary = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=True)
    test_cases = Column(JSON, nullable=False, default=list)
    model_used = Column(String(100), nullable=True)
    generation_time_ms = Column(Integer, nullable=True)
    status = Column(Enum(TestCaseDocumentStatus), default=TestCaseDocumentStatus.GENERATED)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_test_case_documents_ticket_created", "jira_ticket_key", "created_at"),
    )

    def __repr__(self):
        return f"<TestCaseDocument(generation_id='{self.generation_id}', ticket='{self.jira_ticket_key}')>"


class GenerationHistoryModel(Base):
    __tablename__ = "generation_history"

    id = Column(Integer, primary_key=True, index=True)
    generation_id = Column(String(64), nullable=False, unique=True, index=True)
    jira_ticket_key = Column(String(50), nullable=False, index=True)
    request_payload = Column(JSON, nullable=True)
    response_payload = Column(JSON, nullable=True)
    model_used = Column(String(100), nullable=True)
    generation_time_ms = Column(Integer, nullable=True)
    status = Column(Enum(GenerationOutcome), nullable=False, default=GenerationOutcome.SUCCESS)
    error_message = Column(Text, nullable=True)
    user_agent = Column(String(512), nullable=True)
    ip_address = Column(String(64), nullable=True)
    # Retention purges key off this column
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    def __repr__(self):
        return f"<GenerationHistory(generation_id='{self.generation_id}', status='{self.status}')>"
