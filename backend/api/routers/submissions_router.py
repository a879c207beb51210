"""Intake API routes: patron submissions and gift orders."""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field

from core.dependencies import get_intake_service
from services import GiftSubmission, IntakeService, Submission, Upload
from shared.errors import DisplayQueueError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["submissions"])


# ============================================
# Response / Request Models
# ============================================


class SubmissionResponse(BaseModel):
    success: bool = True
    message: str = "Submission queued"
    id: str


class GiftItemRequest(BaseModel):
    id: str
    name: str
    quantity: int = Field(default=1, ge=1)
    price: float = Field(default=0, ge=0)


class GiftOrderRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    sender: str | None = None
    table_number: int
    items: list[GiftItemRequest] = Field(..., min_length=1)
    note: str = ""
    total_price: float = Field(default=0, ge=0)
    user_id: str | None = None
    email: str | None = None
    avatar: str | None = None


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


# ============================================
# Endpoints
# ============================================


@router.post("", response_model=SubmissionResponse)
async def submit(
    type: str = Form(...),
    text: str = Form(""),
    duration_seconds: int | None = Form(None),
    amount: float = Form(0),
    sender: str | None = Form(None),
    user_id: str | None = Form(None),
    email: str | None = Form(None),
    avatar: str | None = Form(None),
    text_color: str | None = Form(None),
    social_type: str | None = Form(None),
    social_name: str | None = Form(None),
    composed: str | None = Form(None),
    file: UploadFile | None = File(None),
    service: IntakeService = Depends(get_intake_service),
) -> SubmissionResponse:
    """Queue an image, text or birthday submission for moderation."""
    try:
        upload = None
        if file is not None and file.filename:
            upload = Upload(filename=file.filename, data=await file.read())
        record = await service.submit(
            Submission(
                type=type,
                sender=sender,
                text=text,
                duration_seconds=duration_seconds,
                amount=amount,
                user_id=user_id,
                email=email,
                avatar=avatar,
                text_color=text_color,
                social_type=social_type,
                social_name=social_name,
                composed=_flag(composed),
                upload=upload,
            )
        )
        return SubmissionResponse(id=record.id)
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to accept submission: {e}")
        raise HTTPException(status_code=500, detail="Failed to accept submission") from None


@router.post("/gift", response_model=SubmissionResponse)
async def submit_gift(
    order: GiftOrderRequest,
    service: IntakeService = Depends(get_intake_service),
) -> SubmissionResponse:
    """Queue a gift order for delivery to a table."""
    try:
        record = await service.submit_gift(
            GiftSubmission(
                order_id=order.order_id,
                table_number=order.table_number,
                items=[item.model_dump() for item in order.items],
                sender=order.sender,
                note=order.note,
                total_price=order.total_price,
                user_id=order.user_id,
                email=order.email,
                avatar=order.avatar,
            )
        )
        return SubmissionResponse(id=record.id, message="Gift order queued")
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to accept gift order: {e}")
        raise HTTPException(status_code=500, detail="Failed to accept gift order") from None
