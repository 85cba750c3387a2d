"""Repositories for whatsapp_connections and whatsapp_settings tables."""

from __future__ import annotations

from datetime import time
from typing import Any

import asyncpg

from shared.cache import AsyncTTLCache, cached
from shared.models.whatsapp import (
    DEFAULT_MESSAGE_TEMPLATE,
    DEFAULT_SEND_TIME,
    DEFAULT_TIMEZONE,
    DEVICE_CONNECTED,
    WhatsAppConnection,
    WhatsAppSettings,
)

_settings_cache = AsyncTTLCache(maxsize=256, ttl=120)

_CONNECTION_COLUMNS = (
    "id::text AS id, user_id::text AS user_id, sender_number, api_key, device_status, "
    "messages_sent, last_connected_at, last_disconnected_at, created_at, updated_at"
)
_SETTINGS_COLUMNS = (
    "id::text AS id, user_id::text AS user_id, auto_send_enabled, send_time, timezone, "
    "default_template, created_at, updated_at"
)


def _connection(row: asyncpg.Record) -> WhatsAppConnection:
    data = dict(row)
    data["messages_sent"] = data.get("messages_sent") or 0
    return WhatsAppConnection(**data)


class WhatsAppConnectionRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get_active(self, user_id: str) -> WhatsAppConnection | None:
        """The most recently created connection in state Connected."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {_CONNECTION_COLUMNS} FROM whatsapp_connections
                WHERE user_id = $1::uuid AND device_status = $2
                ORDER BY created_at DESC
                LIMIT 1
                """,
                user_id,
                DEVICE_CONNECTED,
            )
            return _connection(row) if row else None

    async def get_latest(self, user_id: str) -> WhatsAppConnection | None:
        """The most recently created connection regardless of state."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {_CONNECTION_COLUMNS} FROM whatsapp_connections
                WHERE user_id = $1::uuid
                ORDER BY created_at DESC
                LIMIT 1
                """,
                user_id,
            )
            return _connection(row) if row else None

    async def increment_messages_sent(self, connection_id: str) -> int:
        """Atomically add one to the sent counter. Returns the new value."""
        async with self.pool.acquire() as conn:
            value = await conn.fetchval(
                """
                UPDATE whatsapp_connections
                SET messages_sent = COALESCE(messages_sent, 0) + 1, updated_at = NOW()
                WHERE id = $1::uuid
                RETURNING messages_sent
                """,
                connection_id,
            )
            return int(value or 0)


class WhatsAppSettingsRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    @cached(
        cache=_settings_cache,
        key_func=lambda self, user_id: f"wa_settings:{user_id}",
    )
    async def get(self, user_id: str) -> WhatsAppSettings | None:
        """Persisted settings for a tenant, or None when never saved."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_SETTINGS_COLUMNS} FROM whatsapp_settings WHERE user_id = $1::uuid",
                user_id,
            )
            return WhatsAppSettings(**dict(row)) if row else None

    async def upsert(
        self,
        user_id: str,
        *,
        auto_send_enabled: bool | None = None,
        send_time: time | None = None,
        timezone: str | None = None,
        default_template: str | None = None,
    ) -> WhatsAppSettings:
        """Insert or partially update settings. Unset fields keep their value."""
        values: list[Any] = [
            user_id,
            auto_send_enabled,
            send_time,
            timezone,
            default_template,
            DEFAULT_SEND_TIME,
            DEFAULT_TIMEZONE,
            DEFAULT_MESSAGE_TEMPLATE,
        ]
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO whatsapp_settings
                    (user_id, auto_send_enabled, send_time, timezone, default_template)
                VALUES (
                    $1::uuid,
                    COALESCE($2::boolean, TRUE),
                    COALESCE($3::time, $6::time),
                    COALESCE($4::text, $7::text),
                    COALESCE($5::text, $8::text)
                )
                ON CONFLICT (user_id) DO UPDATE SET
                    auto_send_enabled = COALESCE($2, whatsapp_settings.auto_send_enabled),
                    send_time         = COALESCE($3, whatsapp_settings.send_time),
                    timezone          = COALESCE($4, whatsapp_settings.timezone),
                    default_template  = COALESCE($5, whatsapp_settings.default_template),
                    updated_at        = NOW()
                RETURNING {_SETTINGS_COLUMNS}
                """,
                *values,
            )
        _settings_cache.invalidate(f"wa_settings:{user_id}")
        return WhatsAppSettings(**dict(row))
