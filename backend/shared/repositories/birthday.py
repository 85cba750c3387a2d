"""Repository for the birthday_messages table."""

from __future__ import annotations

from datetime import UTC, date, datetime, time

import asyncpg

from shared.models.birthday import BirthdayMessage, NewBirthdayMessage

_COLUMNS = (
    "id::text AS id, user_id::text AS user_id, customer_id::text AS customer_id, "
    "whatsapp_connection_id::text AS whatsapp_connection_id, recipient_number, "
    "birthday_date, sent_year, message_sent, message_status, error_message, "
    "sent_at, created_at"
)


class BirthdayMessageRepository:
    """Append-only store of birthday message attempts."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def find(
        self, user_id: str, customer_id: str, birthday_date: date, sent_year: int
    ) -> BirthdayMessage | None:
        """Look up the attempt recorded for this birthday, if any."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {_COLUMNS} FROM birthday_messages
                WHERE user_id = $1::uuid AND customer_id = $2::uuid
                  AND birthday_date = $3 AND sent_year = $4
                """,
                user_id,
                customer_id,
                birthday_date,
                sent_year,
            )
            return BirthdayMessage(**dict(row)) if row else None

    async def insert(self, message: NewBirthdayMessage) -> BirthdayMessage | None:
        """Insert an attempt.

        Returns None when a row with the same
        ``(user_id, customer_id, birthday_date, sent_year)`` already exists.
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO birthday_messages (
                    user_id, customer_id, whatsapp_connection_id, recipient_number,
                    message_sent, message_status, error_message, birthday_date, sent_year
                )
                VALUES ($1::uuid, $2::uuid, $3::uuid, $4, $5, $6, $7, $8, $9)
                ON CONFLICT ON CONSTRAINT unique_birthday_message DO NOTHING
                RETURNING {_COLUMNS}
                """,
                message.user_id,
                message.customer_id,
                message.whatsapp_connection_id,
                message.recipient_number,
                message.message_sent,
                message.message_status,
                message.error_message,
                message.birthday_date,
                message.sent_year,
            )
            return BirthdayMessage(**dict(row)) if row else None

    async def customer_ids_for_year(self, user_id: str, sent_year: int) -> set[str]:
        """IDs of the tenant's customers that already have an attempt this year."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT DISTINCT customer_id::text AS customer_id FROM birthday_messages
                WHERE user_id = $1::uuid AND sent_year = $2
                """,
                user_id,
                sent_year,
            )
            return {row["customer_id"] for row in rows}

    async def list_history(
        self,
        user_id: str,
        *,
        page: int = 1,
        limit: int = 50,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> tuple[list[dict], int]:
        """Newest-first page of attempts joined with customer and sender info.

        Returns ``(rows, total_count)``.
        """
        start = datetime.combine(date_from, time.min, tzinfo=UTC) if date_from else None
        end = datetime.combine(date_to, time.max, tzinfo=UTC) if date_to else None
        offset = (page - 1) * limit

        async with self.pool.acquire() as conn:
            total = await conn.fetchval(
                """
                SELECT COUNT(*) FROM birthday_messages
                WHERE user_id = $1::uuid
                  AND ($2::timestamptz IS NULL OR sent_at >= $2)
                  AND ($3::timestamptz IS NULL OR sent_at <= $3)
                """,
                user_id,
                start,
                end,
            )
            rows = await conn.fetch(
                """
                SELECT m.id::text AS id, m.customer_id::text AS customer_id,
                       m.recipient_number, m.message_sent, m.message_status,
                       m.error_message, m.birthday_date, m.sent_year, m.sent_at,
                       c.name AS customer_name, c.sender_name AS customer_sender_name,
                       c.phone AS customer_phone, w.sender_number
                FROM birthday_messages m
                LEFT JOIN customers c ON c.id = m.customer_id
                LEFT JOIN whatsapp_connections w ON w.id = m.whatsapp_connection_id
                WHERE m.user_id = $1::uuid
                  AND ($2::timestamptz IS NULL OR m.sent_at >= $2)
                  AND ($3::timestamptz IS NULL OR m.sent_at <= $3)
                ORDER BY m.sent_at DESC
                LIMIT $4 OFFSET $5
                """,
                user_id,
                start,
                end,
                limit,
                offset,
            )
            return [dict(row) for row in rows], int(total or 0)
