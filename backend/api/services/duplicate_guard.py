"""Once-per-year guard for birthday messages."""

from __future__ import annotations

import logging
from datetime import date

from shared.models.birthday import BirthdayMessage, NewBirthdayMessage
from shared.repositories.birthday import BirthdayMessageRepository

logger = logging.getLogger(__name__)


class DuplicateGuard:
    """Checks and records the ``(tenant, customer, birthday_date, year)`` key.

    The pre-dispatch check keeps the common path from calling the gateway
    twice. The unique constraint on ``birthday_messages`` closes the window
    between check and insert: a losing insert re-reads the winning row.
    """

    def __init__(self, records: BirthdayMessageRepository) -> None:
        self.records = records

    async def find_existing(
        self, user_id: str, customer_id: str, birthday_date: date
    ) -> BirthdayMessage | None:
        return await self.records.find(user_id, customer_id, birthday_date, birthday_date.year)

    async def record(self, message: NewBirthdayMessage) -> tuple[BirthdayMessage, bool]:
        """Persist an attempt. Returns ``(row, created)``.

        ``created`` is False when another attempt for the same key was stored
        first; the returned row is then the existing one.
        """
        created = await self.records.insert(message)
        if created is not None:
            return created, True

        winner = await self.records.find(
            message.user_id, message.customer_id, message.birthday_date, message.sent_year
        )
        if winner is None:
            raise RuntimeError(
                f"Insert for customer {message.customer_id} conflicted but no row was found"
            )
        logger.info(
            f"Birthday message for customer {message.customer_id} "
            f"({message.birthday_date}) was recorded concurrently"
        )
        return winner, False
