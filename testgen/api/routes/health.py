from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from typing import Dict, List
from sqlalchemy import text
from sqlalchemy.orm import Session
import structlog

from testgen.config.settings import settings
from testgen.models.schemas import CamelModel
from testgen.core.database import get_database
from testgen.core.dependencies import get_language_model
from testgen.repositories.interfaces.language_model import ILanguageModelService

logger = structlog.get_logger()

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(CamelModel):
    status: str
    timestamp: datetime
    version: str
    environment: str
    services: Dict[str, str]
    available_models: List[str]


@router.get("", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check(
    db: Session = Depends(get_database),
    language_model: ILanguageModelService = Depends(get_language_model),
):
    """API, database and model backend status"""
    try:
        try:
            db.execute(text("SELECT 1"))
            database_status = "connected"
        except Exception as e:
            logger.warning("Database health probe failed", error=str(e))
            database_status = "disconnected"

        ollama_ok = await language_model.check_health()
        models = await language_model.list_models() if ollama_ok else []

        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc),
            version="1.0.0",
            environment=settings.environment,
            services={
                "api": "running",
                "database": database_status,
                "ollama": "connected" if ollama_ok else "disconnected",
            },
            available_models=[m.get("name", "") for m in models if isinstance(m, dict)],
        )
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "error": str(e)},
        )
