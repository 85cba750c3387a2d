"""Unattended birthday messaging across all tenants.

``BirthdayAutomation.run`` is the scheduler entry point: it finds every
customer whose birthday is on the reference date, groups them by tenant and
hands each group to ``TenantBatchRunner``. Tenants run one after another and
customers within a tenant are sent one at a time with a pause in between.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from shared.models.customer import Customer
from shared.models.whatsapp import DEFAULT_TIMEZONE, WhatsAppSettings
from shared.repositories.customer import CustomerRepository
from shared.repositories.whatsapp import (
    WhatsAppConnectionRepository,
    WhatsAppSettingsRepository,
)

from .birthday_calendar import birthday_month_days, is_birthday
from .birthday_sender import (
    SEND_ALREADY_SENT,
    SEND_FAILED,
    SEND_SENT,
    SEND_SKIPPED,
    BirthdaySender,
    SendOutcome,
)
from .pacing import MessagePacer
from .phone import has_usable_phone

logger = logging.getLogger(__name__)

# Hourly trigger honouring each tenant's auto-send flag and send time
MODE_SCHEDULED = "scheduled"
# Every birthday today, no time-of-day gate
MODE_DAILY = "daily"
AUTOMATION_MODES = (MODE_SCHEDULED, MODE_DAILY)

TENANT_PROCESSED = "processed"
TENANT_ERROR = "error"
TENANT_DISABLED = "disabled"
TENANT_NOT_DUE = "not_due"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def resolve_timezone(name: str | None, fallback: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """ZoneInfo for ``name``, or ``fallback`` when the name is unknown."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{name}', using {fallback}")
    return ZoneInfo(fallback)


def is_send_time(
    settings: WhatsAppSettings,
    now: datetime,
    window_minutes: int = 1,
    fallback_timezone: str = DEFAULT_TIMEZONE,
) -> bool:
    """True when ``now`` in the tenant's timezone is at or just past its send time.

    The window absorbs trigger jitter: with the default of one minute,
    08:00 and 08:01 both match an 08:00 send time.
    """
    local = now.astimezone(resolve_timezone(settings.timezone, fallback_timezone))
    current = local.hour * 60 + local.minute
    target = settings.send_time.hour * 60 + settings.send_time.minute
    return (current - target) % (24 * 60) <= window_minutes


@dataclass
class TenantReport:
    user_id: str
    status: str = TENANT_PROCESSED
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    already_sent: int = 0
    errors: list[str] = field(default_factory=list)
    outcomes: list[SendOutcome] = field(default_factory=list)

    def add(self, outcome: SendOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.state == SEND_SENT:
            self.sent += 1
        elif outcome.state == SEND_FAILED:
            self.failed += 1
            self.errors.append(f"Customer {outcome.customer_id}: {outcome.error}")
        elif outcome.state == SEND_SKIPPED:
            self.skipped += 1
        elif outcome.state == SEND_ALREADY_SENT:
            self.already_sent += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "status": self.status,
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
            "already_sent": self.already_sent,
            "errors": list(self.errors),
        }


@dataclass
class AutomationReport:
    reference_date: date
    mode: str
    max_errors: int = 50
    processed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    already_sent: int = 0
    tenants: list[TenantReport] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    errors_truncated: int = 0

    def add_error(self, error: str) -> None:
        if len(self.errors) < self.max_errors:
            self.errors.append(error)
        else:
            self.errors_truncated += 1

    def absorb(self, tenant: TenantReport) -> None:
        self.tenants.append(tenant)
        if tenant.status == TENANT_PROCESSED:
            self.processed += 1
        self.sent += tenant.sent
        self.failed += tenant.failed
        self.skipped += tenant.skipped
        self.already_sent += tenant.already_sent
        for error in tenant.errors:
            self.add_error(error)

    @property
    def summary(self) -> str:
        return (
            f"Processed {self.processed} users, sent {self.sent} messages, "
            f"{self.failed} failed"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference_date": self.reference_date.isoformat(),
            "mode": self.mode,
            "processed": self.processed,
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
            "already_sent": self.already_sent,
            "tenants": [t.to_dict() for t in self.tenants],
            "errors": list(self.errors),
            "errors_truncated": self.errors_truncated,
        }


class TenantBatchRunner:
    """Sends today's birthday messages for one tenant."""

    def __init__(
        self,
        *,
        connections: WhatsAppConnectionRepository,
        settings: WhatsAppSettingsRepository,
        sender: BirthdaySender,
        pacer: MessagePacer,
        send_window_minutes: int = 1,
        default_timezone: str = DEFAULT_TIMEZONE,
    ) -> None:
        self.connections = connections
        self.settings = settings
        self.sender = sender
        self.pacer = pacer
        self.send_window_minutes = send_window_minutes
        self.default_timezone = default_timezone

    async def load_settings(self, user_id: str) -> WhatsAppSettings:
        """Persisted settings, or the defaults when the tenant never saved any."""
        settings = await self.settings.get(user_id)
        return settings if settings is not None else WhatsAppSettings(user_id=user_id)

    async def run(
        self,
        user_id: str,
        customers: list[Customer],
        *,
        today: date,
        now: datetime,
        mode: str = MODE_DAILY,
    ) -> TenantReport:
        report = TenantReport(user_id=user_id)
        settings = await self.load_settings(user_id)

        if mode == MODE_SCHEDULED:
            if not settings.auto_send_enabled:
                report.status = TENANT_DISABLED
                return report
            if not is_send_time(settings, now, self.send_window_minutes, self.default_timezone):
                report.status = TENANT_NOT_DUE
                return report

        connection = await self.connections.get_active(user_id)
        if connection is None:
            report.status = TENANT_ERROR
            report.errors.append(f"User {user_id}: No active WhatsApp connection")
            logger.warning(f"Skipping user {user_id}: no active WhatsApp connection")
            return report
        if not connection.has_credentials:
            report.status = TENANT_ERROR
            report.errors.append(f"User {user_id}: WhatsApp connection has no API key or sender")
            logger.warning(f"Skipping user {user_id}: connection {connection.id} lacks credentials")
            return report

        previous_dispatched = False
        for customer in customers:
            if previous_dispatched:
                await self.pacer.wait()
            try:
                outcome = await self.sender.send(
                    customer, connection, settings.default_template, today
                )
            except Exception as e:
                logger.exception(f"Unexpected error sending to customer {customer.id}: {e}")
                report.failed += 1
                report.errors.append(f"Customer {customer.id}: {e}")
                previous_dispatched = False
                continue
            report.add(outcome)
            previous_dispatched = outcome.dispatched

        logger.info(
            f"User {user_id}: sent={report.sent} failed={report.failed} "
            f"skipped={report.skipped} already_sent={report.already_sent}"
        )
        return report


class BirthdayAutomation:
    """Scheduler entry point for one automation run."""

    def __init__(
        self,
        *,
        customers: CustomerRepository,
        runner: TenantBatchRunner,
        timezone: str = DEFAULT_TIMEZONE,
        clock: Clock = utc_now,
        max_errors: int = 50,
    ) -> None:
        self.customers = customers
        self.runner = runner
        self.tz = resolve_timezone(timezone)
        self.clock = clock
        self.max_errors = max_errors

    def today(self, now: datetime | None = None) -> date:
        """The reference date in the canonical timezone."""
        return (now or self.clock()).astimezone(self.tz).date()

    async def find_birthdays(self, today: date) -> dict[str, list[Customer]]:
        """Customers celebrating on ``today``, grouped by tenant."""
        candidates = await self.customers.list_birthday_candidates(birthday_month_days(today))
        grouped: dict[str, list[Customer]] = defaultdict(list)
        for customer in candidates:
            if has_usable_phone(customer.phone) and is_birthday(customer.dob, today):
                grouped[customer.user_id].append(customer)
        return dict(grouped)

    async def run(
        self, mode: str = MODE_SCHEDULED, reference_date: date | None = None
    ) -> AutomationReport:
        if mode not in AUTOMATION_MODES:
            raise ValueError(f"Unknown automation mode: {mode}")

        now = self.clock()
        today = reference_date or self.today(now)
        report = AutomationReport(reference_date=today, mode=mode, max_errors=self.max_errors)

        grouped = await self.find_birthdays(today)
        logger.info(
            f"Birthday automation ({mode}) for {today}: "
            f"{sum(len(c) for c in grouped.values())} customers across {len(grouped)} users"
        )

        for user_id, customers in grouped.items():
            try:
                tenant = await self.runner.run(
                    user_id, customers, today=today, now=now, mode=mode
                )
            except Exception as e:
                logger.exception(f"Birthday automation failed for user {user_id}: {e}")
                tenant = TenantReport(
                    user_id=user_id, status=TENANT_ERROR, errors=[f"User {user_id}: {e}"]
                )
            report.absorb(tenant)

        logger.info(f"Birthday automation finished: {report.summary}")
        return report
