"""WhatsApp connection and settings API routes"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.core.dependencies import get_current_user_id, get_whatsapp_service
from api.services import InvalidSettingsError, NoActiveConnectionError, WhatsAppService
from api.services.whatsapp_service import connection_to_dict, settings_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/whatsapp", tags=["whatsapp"])


# ============================================
# Response / Request Models
# ============================================


class SettingsResponse(BaseModel):
    user_id: str
    auto_send_enabled: bool
    send_time: str
    timezone: str
    default_template: str
    updated_at: datetime | None = None


class SettingsUpdate(BaseModel):
    auto_send_enabled: bool | None = None
    send_time: str | None = None
    timezone: str | None = None
    default_template: str | None = None


class ConnectionResponse(BaseModel):
    id: str
    sender_number: str
    device_status: str
    is_connected: bool
    messages_sent: int
    last_connected_at: datetime | None = None
    last_disconnected_at: datetime | None = None


class SendTestRequest(BaseModel):
    number: str | None = None
    message: str | None = None


class SendTestResponse(BaseModel):
    success: bool
    message: str
    response: dict = {}


# ============================================
# Settings Endpoints
# ============================================


@router.get("/settings", response_model=SettingsResponse)
async def get_whatsapp_settings(
    user_id: str = Depends(get_current_user_id),
    service: WhatsAppService = Depends(get_whatsapp_service),
) -> SettingsResponse:
    """Automation settings; defaults when the tenant never saved any."""
    try:
        settings = await service.get_settings(user_id)
        return SettingsResponse(**settings_to_dict(settings))
    except Exception as e:
        logger.exception(f"Failed to get WhatsApp settings: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch settings") from None


@router.put("/settings", response_model=SettingsResponse)
async def update_whatsapp_settings(
    body: SettingsUpdate,
    user_id: str = Depends(get_current_user_id),
    service: WhatsAppService = Depends(get_whatsapp_service),
) -> SettingsResponse:
    try:
        settings = await service.update_settings(user_id, **body.model_dump(exclude_unset=True))
        return SettingsResponse(**settings_to_dict(settings))
    except InvalidSettingsError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except Exception as e:
        logger.exception(f"Failed to update WhatsApp settings: {e}")
        raise HTTPException(status_code=500, detail="Failed to update settings") from None


# ============================================
# Connection Endpoints
# ============================================


@router.get("/connection", response_model=ConnectionResponse)
async def get_whatsapp_connection(
    user_id: str = Depends(get_current_user_id),
    service: WhatsAppService = Depends(get_whatsapp_service),
) -> ConnectionResponse:
    try:
        connection = await service.get_connection(user_id)
    except Exception as e:
        logger.exception(f"Failed to get WhatsApp connection: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch connection") from None
    if connection is None:
        raise HTTPException(status_code=404, detail="WhatsApp connection not found")
    return ConnectionResponse(**connection_to_dict(connection))


@router.post("/send-test", response_model=SendTestResponse)
async def send_test_message(
    body: SendTestRequest,
    user_id: str = Depends(get_current_user_id),
    service: WhatsAppService = Depends(get_whatsapp_service),
) -> SendTestResponse:
    """Send a test message (defaults to the sender's own number)."""
    try:
        result = await service.send_test(user_id, body.number, body.message)
    except NoActiveConnectionError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except Exception as e:
        logger.exception(f"Failed to send test message: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from None

    return SendTestResponse(
        success=result.success,
        message="Test message sent successfully!" if result.success else result.error or "",
        response=result.response,
    )
