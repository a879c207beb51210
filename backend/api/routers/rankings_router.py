"""Ranking API routes."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from core.dependencies import get_ranking_service
from services import RankingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rankings", tags=["rankings"])


class RankingResponse(BaseModel):
    success: bool = True
    ranks: list[dict[str, Any]]
    total: int


@router.get("", response_model=RankingResponse)
async def get_rankings(
    limit: int = Query(default=3, ge=1, le=100),
    service: RankingService = Depends(get_ranking_service),
) -> RankingResponse:
    """Top submitters by points, plus the number of ranked submitters."""
    try:
        board = await service.get_top(limit)
        return RankingResponse(ranks=board.ranks, total=board.total)
    except Exception as e:
        logger.exception(f"Failed to get rankings: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch rankings") from None
