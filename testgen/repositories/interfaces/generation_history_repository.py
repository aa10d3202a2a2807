from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from testgen.models.schemas import GenerationRecord


class IGenerationHistoryRepository(ABC):
    """Interface for the generation audit trail"""

    @abstractmethod
    async def record(self, record: GenerationRecord) -> GenerationRecord:
        pass

    @abstractmethod
    async def get_by_generation_id(self, generation_id: str) -> Optional[GenerationRecord]:
        pass

    @abstractmethod
    async def list_recent(self, skip: int = 0, limit: int = 20) -> List[GenerationRecord]:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete records older than the retention window, returning how many"""
        pass
