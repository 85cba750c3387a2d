"""Tenant-facing birthday operations behind the /api/birthday routes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from shared.models.whatsapp import WhatsAppConnection
from shared.repositories.birthday import BirthdayMessageRepository
from shared.repositories.customer import CustomerRepository
from shared.repositories.whatsapp import (
    WhatsAppConnectionRepository,
    WhatsAppSettingsRepository,
)

from .birthday_automation import Clock, TenantBatchRunner, resolve_timezone, utc_now
from .birthday_calendar import age_on, next_birthday_within
from .birthday_sender import (
    SEND_ALREADY_SENT,
    SEND_FAILED,
    SEND_SENT,
    SEND_SKIPPED,
    BirthdaySender,
    SendOutcome,
)
from .errors import (
    CustomerNotFoundError,
    MissingPhoneError,
    NoActiveConnectionError,
    NoCustomersError,
)
from .pacing import MessagePacer
from .phone import has_usable_phone

logger = logging.getLogger(__name__)


@dataclass
class BulkSendResult:
    total: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    already_sent: int = 0
    details: list[dict[str, Any]] = field(default_factory=list)

    def add(self, outcome: SendOutcome) -> None:
        counters = {
            SEND_SENT: "sent",
            SEND_FAILED: "failed",
            SEND_SKIPPED: "skipped",
            SEND_ALREADY_SENT: "already_sent",
        }
        attr = counters[outcome.state]
        setattr(self, attr, getattr(self, attr) + 1)
        detail: dict[str, Any] = {
            "customer_id": outcome.customer_id,
            "name": outcome.customer_name,
            "status": outcome.state,
        }
        if outcome.error and outcome.state in (SEND_FAILED, SEND_SKIPPED):
            detail["error"] = outcome.error
        self.details.append(detail)

    @property
    def summary(self) -> str:
        return (
            f"Sent {self.sent} messages, {self.failed} failed, {self.skipped} skipped, "
            f"{self.already_sent} already sent"
        )


class BirthdayService:
    def __init__(
        self,
        *,
        customers: CustomerRepository,
        connections: WhatsAppConnectionRepository,
        settings: WhatsAppSettingsRepository,
        records: BirthdayMessageRepository,
        sender: BirthdaySender,
        runner: TenantBatchRunner,
        bulk_pacer: MessagePacer,
        timezone: str,
        clock: Clock = utc_now,
    ) -> None:
        self.customers = customers
        self.connections = connections
        self.settings = settings
        self.records = records
        self.sender = sender
        self.runner = runner
        self.bulk_pacer = bulk_pacer
        self.timezone = timezone
        self.clock = clock

    async def _today_for(self, user_id: str) -> date:
        """The tenant's local civil date."""
        settings = await self.runner.load_settings(user_id)
        return self.clock().astimezone(resolve_timezone(settings.timezone, self.timezone)).date()

    async def _require_connection(self, user_id: str) -> WhatsAppConnection:
        connection = await self.connections.get_active(user_id)
        if connection is None or not connection.has_credentials:
            raise NoActiveConnectionError(user_id)
        return connection

    async def _template_for(self, user_id: str, override: str | None) -> str:
        if override:
            return override
        return (await self.runner.load_settings(user_id)).default_template

    async def send_one(
        self, user_id: str, customer_id: str, message_template: str | None = None
    ) -> SendOutcome:
        """Send (at most once this year) the birthday message for one customer."""
        customer = await self.customers.get(user_id, customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id)
        if not has_usable_phone(customer.phone):
            raise MissingPhoneError(customer_id)

        connection = await self._require_connection(user_id)
        template = await self._template_for(user_id, message_template)
        today = await self._today_for(user_id)
        return await self.sender.send(customer, connection, template, today)

    async def send_bulk(
        self, user_id: str, customer_ids: list[str], message_template: str | None = None
    ) -> BulkSendResult:
        """Send to an explicit list of customers, one at a time."""
        connection = await self._require_connection(user_id)
        customers = await self.customers.list_by_ids(user_id, customer_ids)
        if not customers:
            raise NoCustomersError()

        template = await self._template_for(user_id, message_template)
        today = await self._today_for(user_id)
        result = BulkSendResult(total=len(customers))

        previous_dispatched = False
        for customer in customers:
            if previous_dispatched:
                await self.bulk_pacer.wait()
            try:
                outcome = await self.sender.send(customer, connection, template, today)
            except Exception as e:
                logger.exception(f"Unexpected error sending to customer {customer.id}: {e}")
                outcome = SendOutcome(
                    customer_id=customer.id,
                    customer_name=customer.name,
                    state=SEND_FAILED,
                    error=str(e) or type(e).__name__,
                )
            result.add(outcome)
            previous_dispatched = outcome.dispatched

        logger.info(f"Bulk birthday send for user {user_id}: {result.summary}")
        return result

    async def upcoming(
        self, user_id: str, days: int = 7, reference: date | None = None
    ) -> dict[str, Any]:
        """Birthdays falling in ``[reference, reference + days]``.

        Today's birthdays come first, then ascending by date.
        """
        today = await self._today_for(user_id)
        reference = reference or today
        customers = await self.customers.list_with_birthdays(user_id)
        messaged = await self.records.customer_ids_for_year(user_id, reference.year)

        entries: list[dict[str, Any]] = []
        for customer in customers:
            if customer.dob is None:
                continue
            celebrated = next_birthday_within(customer.dob, reference, days)
            if celebrated is None:
                continue
            age = customer.age if customer.age is not None else age_on(customer.dob, celebrated)
            entries.append(
                {
                    "id": customer.id,
                    "name": customer.name,
                    "sender_name": customer.sender_name,
                    "save_name": customer.save_name,
                    "phone": customer.phone,
                    "dob": customer.dob.isoformat(),
                    "pg_code": customer.pg_code,
                    "birthday_date": celebrated.isoformat(),
                    "age": age,
                    "is_today": celebrated == today,
                    "already_sent": customer.id in messaged and celebrated.year == reference.year,
                }
            )

        entries.sort(key=lambda e: (not e["is_today"], e["birthday_date"]))
        today_count = sum(1 for e in entries if e["is_today"])
        return {
            "birthdays": entries,
            "today_count": today_count,
            "upcoming_count": len(entries) - today_count,
        }

    async def history(
        self,
        user_id: str,
        *,
        page: int = 1,
        limit: int = 50,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> dict[str, Any]:
        rows, total = await self.records.list_history(
            user_id, page=page, limit=limit, date_from=date_from, date_to=date_to
        )
        return {
            "data": rows,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": (total + limit - 1) // limit if limit else 0,
            },
        }
