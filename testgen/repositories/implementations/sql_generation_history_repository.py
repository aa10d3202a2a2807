from datetime import datetime, timedelta, timezone
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import structlog
from testgen.repositories.interfaces.generation_history_repository import IGenerationHistoryRepository
from testgen.models.database import GenerationHistoryModel
from testgen.models.schemas import ClientMetadata, GenerationRecord
from testgen.core.exceptions import PersistenceError
from testgen.config.settings import settings

logger = structlog.get_logger()


class SQLGenerationHistoryRepository(IGenerationHistoryRepository):
    """SQLAlchemy implementation of the generation audit trail.

    Records expire ``retention_days`` after creation: reads skip them and
    :meth:`purge_expired` deletes them.
    """

    def __init__(self, db: Session, retention_days: Optional[int] = None):
        self.db = db
        self.retention = timedelta(
            days=retention_days if retention_days is not None else settings.history_retention_days
        )

    def _cutoff(self, now: Optional[datetime] = None) -> datetime:
        return (now or datetime.now(timezone.utc)) - self.retention

    async def record(self, record: GenerationRecord) -> GenerationRecord:
        db_record = GenerationHistoryModel(
            generation_id=record.generation_id,
            jira_ticket_key=record.ticket_key,
            request_payload=record.request_snapshot,
            response_payload=record.response_summary,
            model_used=record.model_used,
            generation_time_ms=record.duration_ms,
            status=record.outcome,
            error_message=record.error_message,
            user_agent=record.client_metadata.user_agent,
            ip_address=record.client_metadata.ip_address,
        )
        if record.created_at is not None:
            db_record.created_at = record.created_at
        try:
            self.db.add(db_record)
            self.db.commit()
            self.db.refresh(db_record)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to save generation history", generation_id=record.generation_id, error=str(e))
            raise PersistenceError("Failed to save generation history", operation="record_generation") from e
        return self._to_record(db_record)

    async def get_by_generation_id(self, generation_id: str) -> Optional[GenerationRecord]:
        db_record = (
            self.db.query(GenerationHistoryModel)
            .filter(GenerationHistoryModel.generation_id == generation_id)
            .filter(GenerationHistoryModel.created_at >= self._cutoff())
            .first()
        )
        return self._to_record(db_record) if db_record else None

    async def list_recent(self, skip: int = 0, limit: int = 20) -> List[GenerationRecord]:
        db_records = (
            self.db.query(GenerationHistoryModel)
            .filter(GenerationHistoryModel.created_at >= self._cutoff())
            .order_by(GenerationHistoryModel.created_at.desc(), GenerationHistoryModel.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return [self._to_record(r) for r in db_records]

    async def count(self) -> int:
        return (
            self.db.query(GenerationHistoryModel)
            .filter(GenerationHistoryModel.created_at >= self._cutoff())
            .count()
        )

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        cutoff = self._cutoff(now)
        try:
            deleted = (
                self.db.query(GenerationHistoryModel)
                .filter(GenerationHistoryModel.created_at < cutoff)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to purge expired generation history", error=str(e))
            raise PersistenceError("Failed to purge generation history", operation="purge_expired") from e
        if deleted:
            logger.info("Purged expired generation history", deleted=deleted, cutoff=cutoff.isoformat())
        return deleted

    @staticmethod
    def _to_record(db_record: GenerationHistoryModel) -> GenerationRecord:
        return GenerationRecord(
            generation_id=db_record.generation_id,
            ticket_key=db_record.jira_ticket_key,
            request_snapshot=db_record.request_payload or {},
            response_summary=db_record.response_payload,
            model_used=db_record.model_used,
            duration_ms=db_record.generation_time_ms or 0,
            outcome=db_record.status,
            error_message=db_record.error_message,
            client_metadata=ClientMetadata(
                user_agent=db_record.user_agent,
                ip_address=db_record.ip_address,
            ),
            created_at=db_record.created_at,
        )
