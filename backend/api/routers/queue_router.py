"""Queue API routes: moderation, playback and wait-time lookup."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from core.dependencies import (
    get_estimator,
    get_playback_scheduler,
    get_queue_service,
)
from services import PlaybackScheduler, QueueService, WaitTimeEstimator
from shared.errors import DisplayQueueError, NotFoundError
from shared.models import HistoryRecord, QueueRecord

logger = logging.getLogger(__name__)

router = APIRouter(tags=["queue"])


# ============================================
# Response / Request Models
# ============================================


class AckResponse(BaseModel):
    success: bool = True
    message: str


class QueueListResponse(BaseModel):
    success: bool = True
    queue: list[QueueRecord]
    total: int


class RecordResponse(AckResponse):
    record: QueueRecord


class ArchivedResponse(AckResponse):
    history: HistoryRecord | None = None


class PlayingResponse(RecordResponse):
    force_completed: list[str] = Field(default_factory=list)


class ApproveRequest(BaseModel):
    width: int | None = Field(default=None, ge=1)
    height: int | None = Field(default=None, ge=1)


class RejectRequest(BaseModel):
    decided_by: str | None = None
    reason: str | None = None


class CompleteRequest(BaseModel):
    decided_by: str | None = None


class OrderStatusResponse(BaseModel):
    success: bool = True
    id: str
    status: str | None
    in_queue: bool
    position: int | None = None
    lead_seconds: float | None = None
    remaining_seconds: float | None = None
    duration_seconds: int | None = None
    projected_start: datetime | None = None
    projected_end: datetime | None = None
    decision_at: datetime | None = None


# ============================================
# Moderation Endpoints
# ============================================


@router.get("/queue", response_model=QueueListResponse)
async def list_queue(service: QueueService = Depends(get_queue_service)) -> QueueListResponse:
    """All records not yet archived, oldest submission first."""
    try:
        records = await service.list_queue()
        return QueueListResponse(queue=records, total=len(records))
    except Exception as e:
        logger.exception(f"Failed to list queue: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch queue") from None


@router.post("/queue/skip", response_model=ArchivedResponse)
async def skip_current(
    scheduler: PlaybackScheduler = Depends(get_playback_scheduler),
) -> ArchivedResponse:
    """Complete whatever is on screen right now."""
    try:
        entry = await scheduler.skip_current()
        if entry is None:
            return ArchivedResponse(message="Nothing is playing")
        return ArchivedResponse(message=f"Skipped {entry.transaction_id}", history=entry)
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to skip current item: {e}")
        raise HTTPException(status_code=500, detail="Failed to skip current item") from None


@router.post("/queue/{record_id}/approve", response_model=RecordResponse)
async def approve(
    record_id: str,
    body: ApproveRequest | None = None,
    service: QueueService = Depends(get_queue_service),
) -> RecordResponse:
    try:
        body = body or ApproveRequest()
        record = await service.approve(record_id, body.width, body.height)
        return RecordResponse(message="Approved", record=record)
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to approve {record_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to approve") from None


@router.post("/queue/{record_id}/reject", response_model=ArchivedResponse)
async def reject(
    record_id: str,
    body: RejectRequest | None = None,
    service: QueueService = Depends(get_queue_service),
) -> ArchivedResponse:
    try:
        body = body or RejectRequest()
        entry = await service.reject(record_id, body.decided_by, body.reason)
        return ArchivedResponse(message="Rejected", history=entry)
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to reject {record_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to reject") from None


@router.post("/queue/{record_id}/playing", response_model=PlayingResponse)
async def mark_playing(
    record_id: str,
    scheduler: PlaybackScheduler = Depends(get_playback_scheduler),
) -> PlayingResponse:
    """Put a record on screen; a stuck occupant is force-completed first."""
    try:
        result = await scheduler.mark_playing(record_id)
        return PlayingResponse(
            message="Now playing",
            record=result.record,
            force_completed=[e.transaction_id for e in result.force_completed],
        )
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to mark {record_id} playing: {e}")
        raise HTTPException(status_code=500, detail="Failed to start playback") from None


@router.post("/queue/{record_id}/complete", response_model=ArchivedResponse)
async def complete(
    record_id: str,
    body: CompleteRequest | None = None,
    service: QueueService = Depends(get_queue_service),
) -> ArchivedResponse:
    try:
        body = body or CompleteRequest()
        entry = await service.complete(record_id, body.decided_by)
        return ArchivedResponse(message="Completed", history=entry)
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to complete {record_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to complete") from None


# ============================================
# Wait-Time Endpoint
# ============================================


@router.get("/order-status/{record_id}", response_model=OrderStatusResponse)
async def order_status(
    record_id: str,
    estimator: WaitTimeEstimator = Depends(get_estimator),
) -> OrderStatusResponse:
    """Queue position and projected air time for a submission."""
    try:
        status = await estimator.estimate(record_id)
    except Exception as e:
        logger.exception(f"Failed to estimate {record_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch order status") from None

    if not status.found:
        raise NotFoundError(f"Order {record_id} not found")
    return OrderStatusResponse(
        id=status.id,
        status=status.status,
        in_queue=status.in_queue,
        position=status.position,
        lead_seconds=status.lead_seconds,
        remaining_seconds=status.remaining_seconds,
        duration_seconds=status.duration_seconds,
        projected_start=status.projected_start,
        projected_end=status.projected_end,
        decision_at=status.decision_at,
    )
