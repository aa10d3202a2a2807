import httpx
from typing import Any, Dict, List, Optional
import structlog
from testgen.repositories.interfaces.language_model import ILanguageModelService
from testgen.models.schemas import GenerationOptions
from testgen.core.exceptions import ModelUnavailable
from testgen.config.settings import settings

logger = structlog.get_logger()


class OllamaService(ILanguageModelService):
    """Ollama HTTP API implementation of the text generation backend"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        default_model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self.default_model = default_model or settings.ollama_coder_model
        self.timeout = timeout if timeout is not None else settings.ollama_timeout_seconds
        self._transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else self.timeout,
            transport=self._transport,
        )

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
        response_format: Optional[str] = None,
    ) -> str:
        """Call /api/generate with streaming disabled and return the reply text.

        Transport failures and non-2xx answers raise ``ModelUnavailable``. An
        empty reply is returned as ``""``; callers decide what that means.
        """
        selected_model = model or self.default_model
        payload: Dict[str, Any] = {
            "model": selected_model,
            "prompt": prompt,
            "stream": False,
            "options": (options or GenerationOptions()).to_ollama(),
        }
        if response_format:
            payload["format"] = response_format

        try:
            async with self._client() as client:
                response = await client.post("/api/generate", json=payload)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Ollama request rejected",
                model=selected_model,
                status_code=e.response.status_code,
                response=e.response.text[:500],
            )
            raise ModelUnavailable(
                f"Model backend answered with status {e.response.status_code}",
                model=selected_model,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Ollama request failed", model=selected_model, error=str(e))
            raise ModelUnavailable("Failed to call the model backend", model=selected_model) from e

        text = body.get("response") if isinstance(body, dict) else None
        logger.info(
            "Ollama reply received",
            model=selected_model,
            reply_chars=len(text) if isinstance(text, str) else 0,
            eval_count=body.get("eval_count") if isinstance(body, dict) else None,
        )
        return text if isinstance(text, str) else ""

    async def check_health(self) -> bool:
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get("/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def list_models(self) -> List[Dict[str, Any]]:
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get("/api/tags")
                response.raise_for_status()
                models = response.json().get("models") or []
                return [m for m in models if isinstance(m, dict)]
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.error("Error listing Ollama models", error=str(e))
            return []
