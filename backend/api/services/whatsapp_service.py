"""WhatsApp settings, connection summary and test sends."""

from __future__ import annotations

import logging
import re
from datetime import time
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from shared.models.whatsapp import WhatsAppConnection, WhatsAppSettings
from shared.repositories.whatsapp import (
    WhatsAppConnectionRepository,
    WhatsAppSettingsRepository,
)

from .errors import BirthdayError, NoActiveConnectionError
from .phone import MALAYSIA_COUNTRY_CODE, has_usable_phone, normalize_phone
from .whatsapp_gateway import DispatchResult, WhatsAppGatewayClient

logger = logging.getLogger(__name__)

TEST_MESSAGE = "SUCCESS SENT"

_SEND_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


class InvalidSettingsError(BirthdayError):
    pass


def parse_send_time(value: str) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` (24-hour)."""
    match = _SEND_TIME_RE.match(value.strip())
    if not match:
        raise InvalidSettingsError(f"Invalid send_time '{value}', expected HH:MM")
    hour, minute, second = match.groups()
    return time(int(hour), int(minute), int(second or 0))


def validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidSettingsError(f"Unknown timezone '{name}'") from None
    return name


def settings_to_dict(settings: WhatsAppSettings) -> dict[str, Any]:
    return {
        "user_id": settings.user_id,
        "auto_send_enabled": settings.auto_send_enabled,
        "send_time": settings.send_time.strftime("%H:%M:%S"),
        "timezone": settings.timezone,
        "default_template": settings.default_template,
        "updated_at": settings.updated_at,
    }


def connection_to_dict(connection: WhatsAppConnection) -> dict[str, Any]:
    # api_key stays server side
    return {
        "id": connection.id,
        "sender_number": connection.sender_number,
        "device_status": connection.device_status,
        "is_connected": connection.is_connected,
        "messages_sent": connection.messages_sent,
        "last_connected_at": connection.last_connected_at,
        "last_disconnected_at": connection.last_disconnected_at,
    }


class WhatsAppService:
    def __init__(
        self,
        *,
        connections: WhatsAppConnectionRepository,
        settings: WhatsAppSettingsRepository,
        gateway: WhatsAppGatewayClient,
        country_code: str = MALAYSIA_COUNTRY_CODE,
    ) -> None:
        self.connections = connections
        self.settings = settings
        self.gateway = gateway
        self.country_code = country_code

    async def get_settings(self, user_id: str) -> WhatsAppSettings:
        settings = await self.settings.get(user_id)
        return settings if settings is not None else WhatsAppSettings(user_id=user_id)

    async def update_settings(
        self,
        user_id: str,
        *,
        auto_send_enabled: bool | None = None,
        send_time: str | None = None,
        timezone: str | None = None,
        default_template: str | None = None,
    ) -> WhatsAppSettings:
        if default_template is not None and not default_template.strip():
            raise InvalidSettingsError("default_template cannot be empty")
        parsed_time = parse_send_time(send_time) if send_time is not None else None
        if timezone is not None:
            validate_timezone(timezone)

        updated = await self.settings.upsert(
            user_id,
            auto_send_enabled=auto_send_enabled,
            send_time=parsed_time,
            timezone=timezone,
            default_template=default_template,
        )
        logger.info(f"WhatsApp settings updated for user {user_id}")
        return updated

    async def get_connection(self, user_id: str) -> WhatsAppConnection | None:
        return await self.connections.get_latest(user_id)

    async def send_test(
        self, user_id: str, number: str | None = None, message: str | None = None
    ) -> DispatchResult:
        """Send an ad-hoc message through the tenant's active connection.

        Without a number the message goes to the sender itself.
        """
        connection = await self.connections.get_active(user_id)
        if connection is None or not connection.has_credentials:
            raise NoActiveConnectionError(user_id)

        target = number if has_usable_phone(number) else connection.sender_number
        recipient = normalize_phone(target or "", self.country_code)
        result = await self.gateway.send_message(
            api_key=connection.api_key,
            sender=connection.sender_number,
            number=recipient,
            message=message or TEST_MESSAGE,
        )
        if result.success:
            logger.info(f"Test message sent to {recipient} for user {user_id}")
        else:
            logger.warning(f"Test message to {recipient} failed: {result.error}")
        return result
