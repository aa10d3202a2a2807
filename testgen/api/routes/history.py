import math
from fastapi import APIRouter, Depends, Query

from testgen.models.schemas import HistoryPage, Pagination
from testgen.repositories.interfaces.generation_history_repository import IGenerationHistoryRepository
from testgen.core.dependencies import get_generation_history_repository

router = APIRouter(tags=["history"])


@router.get("/history", response_model=HistoryPage)
async def get_generation_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    repository: IGenerationHistoryRepository = Depends(get_generation_history_repository),
):
    """Generation audit trail, newest first"""
    skip = (page - 1) * limit
    records = await repository.list_recent(skip=skip, limit=limit)
    total = await repository.count()
    return HistoryPage(
        history=records,
        pagination=Pagination(
            current_page=page,
            total_pages=math.ceil(total / limit) if total else 0,
            total_items=total,
            items_per_page=limit,
        ),
    )
