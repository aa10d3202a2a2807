from abc import ABC, abstractmethod
from typing import Dict, Any


class IJiraService(ABC):
    """Interface for JIRA integration operations"""

    @abstractmethod
    async def fetch_ticket(self, ticket_key: str) -> Dict[str, Any]:
        """Fetch the raw JIRA issue payload for a ticket key"""
        pass
