from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from testgen.models.schemas import GenerationOptions


class ILanguageModelService(ABC):
    """Interface for the text generation backend"""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
        response_format: Optional[str] = None,
    ) -> str:
        """Generate a single non-streamed reply for a prompt"""
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        """Return True when the backend answers"""
        pass

    @abstractmethod
    async def list_models(self) -> List[Dict[str, Any]]:
        """List the models the backend can serve"""
        pass
