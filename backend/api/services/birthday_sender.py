"""Single-customer birthday message flow."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any

from shared.models.birthday import MESSAGE_FAILED, MESSAGE_SENT, NewBirthdayMessage
from shared.models.customer import Customer
from shared.models.whatsapp import WhatsAppConnection
from shared.repositories.whatsapp import WhatsAppConnectionRepository

from .birthday_calendar import birthday_in_year
from .duplicate_guard import DuplicateGuard
from .message_template import render_template
from .phone import MALAYSIA_COUNTRY_CODE, has_usable_phone, normalize_phone
from .whatsapp_gateway import DispatchResult, WhatsAppGatewayClient

logger = logging.getLogger(__name__)

# Terminal states of one send
SEND_SKIPPED = "skipped"
SEND_ALREADY_SENT = "already_sent"
SEND_SENT = "sent"
SEND_FAILED = "failed"


@dataclass
class SendOutcome:
    customer_id: str
    customer_name: str | None
    state: str
    birthday_date: date | None = None
    recipient_number: str | None = None
    message: str | None = None
    error: str | None = None
    record_id: str | None = None
    dispatched: bool = False
    recorded: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["birthday_date"] = self.birthday_date.isoformat() if self.birthday_date else None
        return data


class BirthdaySender:
    """Sends one customer's birthday message at most once per year.

    Flow: phone check → duplicate check → render → normalize → dispatch →
    record. Dispatch and persistence failures end in ``failed`` and never
    raise to the caller.
    """

    def __init__(
        self,
        *,
        guard: DuplicateGuard,
        connections: WhatsAppConnectionRepository,
        gateway: WhatsAppGatewayClient,
        country_code: str = MALAYSIA_COUNTRY_CODE,
    ) -> None:
        self.guard = guard
        self.connections = connections
        self.gateway = gateway
        self.country_code = country_code

    async def send(
        self,
        customer: Customer,
        connection: WhatsAppConnection,
        template: str,
        today: date,
    ) -> SendOutcome:
        outcome = SendOutcome(customer_id=customer.id, customer_name=customer.name, state="")

        if not has_usable_phone(customer.phone):
            outcome.state = SEND_SKIPPED
            outcome.error = "No phone number"
            return outcome

        birthday_date = birthday_in_year(customer.dob, today.year) if customer.dob else today
        outcome.birthday_date = birthday_date

        existing = await self.guard.find_existing(customer.user_id, customer.id, birthday_date)
        if existing is not None:
            logger.debug(f"Customer {customer.id} already messaged for {birthday_date}")
            outcome.state = SEND_ALREADY_SENT
            outcome.record_id = existing.id
            outcome.recipient_number = existing.recipient_number
            return outcome

        message = render_template(template, customer)
        number = normalize_phone(customer.phone or "", self.country_code)
        outcome.message = message
        outcome.recipient_number = number

        result = await self._dispatch(connection, number, message)
        outcome.dispatched = True

        status = MESSAGE_SENT if result.success else MESSAGE_FAILED
        outcome.state = SEND_SENT if result.success else SEND_FAILED
        outcome.error = result.error

        created = await self._record(
            NewBirthdayMessage(
                user_id=customer.user_id,
                customer_id=customer.id,
                whatsapp_connection_id=connection.id,
                recipient_number=number,
                birthday_date=birthday_date,
                message_sent=message,
                message_status=status,
                error_message=result.error,
            ),
            outcome,
        )
        if created is False:
            # Another run stored this birthday first; its row is authoritative
            outcome.state = SEND_ALREADY_SENT
            return outcome

        if result.success:
            logger.info(f"Birthday message sent to {number} (customer {customer.id})")
            await self._increment_counter(connection)
        else:
            logger.warning(
                f"Birthday message to {number} failed (customer {customer.id}): {result.error}"
            )
        return outcome

    async def _dispatch(
        self, connection: WhatsAppConnection, number: str, message: str
    ) -> DispatchResult:
        try:
            return await self.gateway.send_message(
                api_key=connection.api_key,
                sender=connection.sender_number,
                number=number,
                message=message,
            )
        except Exception as e:
            logger.exception(f"Unexpected dispatch error for {number}: {e}")
            return DispatchResult(success=False, error=str(e) or type(e).__name__)

    async def _record(self, message: NewBirthdayMessage, outcome: SendOutcome) -> bool | None:
        """Persist the attempt. Returns created flag, or None if persistence failed."""
        try:
            row, created = await self.guard.record(message)
        except Exception as e:
            logger.exception(
                f"Failed to record birthday message for customer {message.customer_id}: {e}"
            )
            return None
        outcome.record_id = row.id
        outcome.recorded = created
        return created

    async def _increment_counter(self, connection: WhatsAppConnection) -> None:
        try:
            connection.messages_sent = await self.connections.increment_messages_sent(
                connection.id
            )
        except Exception as e:
            logger.exception(f"Failed to increment counter for connection {connection.id}: {e}")
