"""Data model for the birthday_messages table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

MESSAGE_SENT = "sent"
MESSAGE_FAILED = "failed"
MESSAGE_PENDING = "pending"

MESSAGE_STATUSES = (MESSAGE_SENT, MESSAGE_FAILED, MESSAGE_PENDING)


@dataclass
class BirthdayMessage:
    """One birthday message attempt.

    At most one row exists per ``(user_id, customer_id, birthday_date, sent_year)``.
    ``birthday_date`` carries the sending year, never the birth year.
    """

    id: str
    user_id: str
    customer_id: str
    whatsapp_connection_id: str
    recipient_number: str
    birthday_date: date
    sent_year: int
    message_sent: str | None = None
    message_status: str = MESSAGE_PENDING
    error_message: str | None = None
    sent_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class NewBirthdayMessage:
    """Insert payload for a birthday message attempt."""

    user_id: str
    customer_id: str
    whatsapp_connection_id: str
    recipient_number: str
    birthday_date: date
    message_sent: str
    message_status: str
    error_message: str | None = None

    @property
    def sent_year(self) -> int:
        return self.birthday_date.year
