"""Data models for WhatsApp gateway connections and per-tenant message settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time

# Device states reported by the gateway
DEVICE_CONNECTED = "Connected"
DEVICE_DISCONNECTED = "Disconnected"
DEVICE_CONNECTING = "Connecting"
DEVICE_FAILED = "Failed"
DEVICE_ERROR = "Error"

DEVICE_STATUSES = (
    DEVICE_CONNECTED,
    DEVICE_DISCONNECTED,
    DEVICE_CONNECTING,
    DEVICE_FAILED,
    DEVICE_ERROR,
)

DEFAULT_TIMEZONE = "Asia/Kuala_Lumpur"
DEFAULT_SEND_TIME = time(hour=8, minute=0)
DEFAULT_MESSAGE_TEMPLATE = (
    "Selamat Hari Jadi, {SenderName}! Semoga panjang umur, murah rezeki, "
    "dan bahagia selalu! 🎉🎂"
)


@dataclass
class WhatsAppConnection:
    """A tenant's gateway device registration."""

    id: str
    user_id: str
    sender_number: str
    api_key: str
    device_status: str = DEVICE_DISCONNECTED
    messages_sent: int = 0
    last_connected_at: datetime | None = None
    last_disconnected_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_connected(self) -> bool:
        return self.device_status == DEVICE_CONNECTED

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.sender_number)


@dataclass
class WhatsAppSettings:
    """Tenant-level automatic birthday message settings."""

    user_id: str
    auto_send_enabled: bool = True
    send_time: time = field(default_factory=lambda: DEFAULT_SEND_TIME)
    timezone: str = DEFAULT_TIMEZONE
    default_template: str = DEFAULT_MESSAGE_TEMPLATE
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_persisted(self) -> bool:
        return self.id is not None
