"""Birthday messaging API routes"""

import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.core.dependencies import get_birthday_service, get_current_user_id
from api.services import (
    BirthdayService,
    CustomerNotFoundError,
    MissingPhoneError,
    NoActiveConnectionError,
    NoCustomersError,
)
from api.services.birthday_sender import SEND_ALREADY_SENT, SEND_SENT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/birthday", tags=["birthday"])


# ============================================
# Response / Request Models
# ============================================


class SendRequest(BaseModel):
    customer_id: str | None = None
    message_template: str | None = None


class SendBulkRequest(BaseModel):
    customer_ids: list[str] = Field(default_factory=list)
    message_template: str | None = None


class SendResponse(BaseModel):
    success: bool
    message: str
    message_id: str | None = None
    already_sent: bool = False


class BulkDetail(BaseModel):
    customer_id: str
    name: str | None = None
    status: str
    error: str | None = None


class BulkSendResponse(BaseModel):
    success: bool
    message: str
    results: dict


class UpcomingBirthday(BaseModel):
    id: str
    name: str | None = None
    sender_name: str | None = None
    save_name: str | None = None
    phone: str | None = None
    dob: str
    pg_code: str | None = None
    birthday_date: str
    age: int | None = None
    is_today: bool
    already_sent: bool


class UpcomingResponse(BaseModel):
    birthdays: list[UpcomingBirthday]
    today_count: int
    upcoming_count: int


class HistoryEntry(BaseModel):
    id: str
    customer_id: str
    customer_name: str | None = None
    customer_sender_name: str | None = None
    customer_phone: str | None = None
    sender_number: str | None = None
    recipient_number: str
    message_sent: str | None = None
    message_status: str
    error_message: str | None = None
    birthday_date: date
    sent_year: int
    sent_at: datetime | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class HistoryResponse(BaseModel):
    data: list[HistoryEntry]
    pagination: Pagination


# ============================================
# Birthday Endpoints
# ============================================


@router.post("/send", response_model=SendResponse)
async def send_birthday_message(
    body: SendRequest,
    user_id: str = Depends(get_current_user_id),
    service: BirthdayService = Depends(get_birthday_service),
):
    """Send the birthday message for one customer (once per year)."""
    if not body.customer_id:
        raise HTTPException(status_code=400, detail="customer_id is required")
    try:
        outcome = await service.send_one(user_id, body.customer_id, body.message_template)
    except (CustomerNotFoundError, NoActiveConnectionError) as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except MissingPhoneError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except Exception as e:
        logger.exception(f"Failed to send birthday message: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from None

    if outcome.state == SEND_ALREADY_SENT:
        return SendResponse(
            success=True,
            message="Birthday message already sent this year",
            message_id=outcome.record_id,
            already_sent=True,
        )
    if outcome.state != SEND_SENT:
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": outcome.error or "Failed to send message",
                "message_recorded": outcome.recorded,
            },
        )
    return SendResponse(
        success=True,
        message="Birthday message sent successfully",
        message_id=outcome.record_id,
    )


@router.post("/send-bulk", response_model=BulkSendResponse)
async def send_bulk_birthday_messages(
    body: SendBulkRequest,
    user_id: str = Depends(get_current_user_id),
    service: BirthdayService = Depends(get_birthday_service),
) -> BulkSendResponse:
    """Send to a list of customers. Individual failures do not fail the request."""
    if not body.customer_ids:
        raise HTTPException(status_code=400, detail="customer_ids array is required")
    try:
        result = await service.send_bulk(user_id, body.customer_ids, body.message_template)
    except NoActiveConnectionError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except NoCustomersError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except Exception as e:
        logger.exception(f"Failed to send bulk birthday messages: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from None

    return BulkSendResponse(
        success=True,
        message=result.summary,
        results={
            "total": result.total,
            "sent": result.sent,
            "failed": result.failed,
            "skipped": result.skipped,
            "already_sent": result.already_sent,
            "details": [BulkDetail(**d).model_dump() for d in result.details],
        },
    )


@router.get("/upcoming", response_model=UpcomingResponse)
async def get_upcoming_birthdays(
    days: int = Query(7, ge=0, le=366),
    date_: date | None = Query(None, alias="date"),
    user_id: str = Depends(get_current_user_id),
    service: BirthdayService = Depends(get_birthday_service),
) -> UpcomingResponse:
    """Birthdays within the next ``days`` days, today's first."""
    try:
        data = await service.upcoming(user_id, days=days, reference=date_)
        return UpcomingResponse(**data)
    except Exception as e:
        logger.exception(f"Failed to fetch upcoming birthdays: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch birthdays") from None


@router.get("/history", response_model=HistoryResponse)
async def get_birthday_history(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    user_id: str = Depends(get_current_user_id),
    service: BirthdayService = Depends(get_birthday_service),
) -> HistoryResponse:
    """Paginated message history, newest first."""
    try:
        data = await service.history(
            user_id, page=page, limit=limit, date_from=date_from, date_to=date_to
        )
        return HistoryResponse(**data)
    except Exception as e:
        logger.exception(f"Failed to fetch birthday history: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch history") from None
