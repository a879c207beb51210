"""History API routes: archive listing, purge and restore."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from core.dependencies import get_history_service
from services import HistoryService
from shared.errors import DisplayQueueError
from shared.models import HistoryRecord, QueueRecord

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/history", tags=["history"])


class HistoryListResponse(BaseModel):
    success: bool = True
    history: list[HistoryRecord]
    total: int


class PurgeResponse(BaseModel):
    success: bool = True
    message: str
    deleted: int


class RestoreResponse(BaseModel):
    success: bool = True
    message: str
    record: QueueRecord


@router.get("", response_model=HistoryListResponse)
async def list_history(
    limit: int = Query(default=500, ge=1, le=5000),
    service: HistoryService = Depends(get_history_service),
) -> HistoryListResponse:
    try:
        entries = await service.list_history(limit)
        return HistoryListResponse(history=entries, total=len(entries))
    except Exception as e:
        logger.exception(f"Failed to list history: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch history") from None


@router.delete("/{history_id}", response_model=PurgeResponse)
async def delete_entry(
    history_id: int,
    service: HistoryService = Depends(get_history_service),
) -> PurgeResponse:
    try:
        await service.delete(history_id)
        return PurgeResponse(message="History entry deleted", deleted=1)
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to delete history {history_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete history entry") from None


@router.delete("", response_model=PurgeResponse)
async def delete_all(service: HistoryService = Depends(get_history_service)) -> PurgeResponse:
    try:
        deleted = await service.delete_all()
        return PurgeResponse(message=f"Deleted {deleted} history entries", deleted=deleted)
    except Exception as e:
        logger.exception(f"Failed to clear history: {e}")
        raise HTTPException(status_code=500, detail="Failed to clear history") from None


@router.post("/{history_id}/restore", response_model=RestoreResponse)
async def restore(
    history_id: int,
    service: HistoryService = Depends(get_history_service),
) -> RestoreResponse:
    """Send an archived item back through moderation as a new submission."""
    try:
        record = await service.restore(history_id)
        return RestoreResponse(message="Restored to queue", record=record)
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to restore history {history_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to restore") from None
