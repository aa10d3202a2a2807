from abc import ABC, abstractmethod
from typing import List
from testgen.models.schemas import ChangedFile


class IReviewSource(ABC):
    """Interface for code review (pull request) lookups"""

    @abstractmethod
    async def get_changed_files(
        self, owner: str, repository: str, review_number: int, per_page: int = 100
    ) -> List[ChangedFile]:
        """Return the first page of files changed by a review"""
        pass
