from datetime import UTC, date, datetime, time

import httpx
import pytest

from api.services.birthday_automation import (
    MODE_DAILY,
    MODE_SCHEDULED,
    TENANT_DISABLED,
    TENANT_ERROR,
    TENANT_NOT_DUE,
    TENANT_PROCESSED,
    AutomationReport,
    BirthdayAutomation,
    TenantReport,
    is_send_time,
)
from shared.models.whatsapp import DEVICE_DISCONNECTED, WhatsAppSettings

from .fakes import make_connection, make_customer

TODAY = date(2026, 5, 15)


class TestIsSendTime:
    @pytest.mark.parametrize(
        "hour,minute,expected",
        [(0, 0, True), (0, 1, True), (0, 2, False), (23, 59, False), (1, 0, False)],
    )
    def test_window_after_send_time(self, hour, minute, expected):
        # 08:00 in Kuala Lumpur is 00:00 UTC
        settings = WhatsAppSettings(user_id="u", send_time=time(8, 0))
        now = datetime(2026, 5, 15, hour, minute, tzinfo=UTC)
        assert is_send_time(settings, now) is expected

    def test_uses_tenant_timezone(self):
        settings = WhatsAppSettings(user_id="u", send_time=time(9, 0), timezone="Asia/Jakarta")
        # 09:00 in Jakarta is 02:00 UTC
        assert is_send_time(settings, datetime(2026, 5, 15, 2, 0, tzinfo=UTC))

    def test_unknown_timezone_falls_back(self):
        settings = WhatsAppSettings(user_id="u", send_time=time(8, 0), timezone="Mars/Olympus")
        assert is_send_time(settings, datetime(2026, 5, 15, 0, 0, tzinfo=UTC))


class TestAutomationReport:
    def test_error_list_is_capped(self):
        report = AutomationReport(reference_date=TODAY, mode=MODE_DAILY, max_errors=2)
        report.absorb(TenantReport(user_id="a", errors=["e1", "e2", "e3"]))
        assert report.errors == ["e1", "e2"]
        assert report.errors_truncated == 1

    def test_only_processed_tenants_are_counted(self):
        report = AutomationReport(reference_date=TODAY, mode=MODE_DAILY)
        report.absorb(TenantReport(user_id="a", status=TENANT_ERROR))
        report.absorb(TenantReport(user_id="b", sent=2))
        assert report.processed == 1
        assert report.sent == 2
        assert report.summary == "Processed 1 users, sent 2 messages, 0 failed"


class TestBirthdayAutomation:
    async def test_tenant_without_connection_is_skipped_others_continue(
        self, automation, customers, connections, gateway_stub
    ):
        customers.customers += [
            make_customer(user_id="tenant-a", id="a1"),
            make_customer(user_id="tenant-b", id="b1", phone="0198765432"),
        ]
        connections.connections.append(make_connection(user_id="tenant-b"))

        report = await automation.run(mode=MODE_DAILY)

        by_user = {t.user_id: t for t in report.tenants}
        assert by_user["tenant-a"].status == TENANT_ERROR
        assert by_user["tenant-a"].sent == 0
        assert "User tenant-a: No active WhatsApp connection" in report.errors
        assert by_user["tenant-b"].sent == 1
        assert report.processed == 1
        assert report.sent == 1
        assert gateway_stub.numbers == ["60198765432"]

    async def test_only_todays_birthdays_with_phones_are_sent(
        self, automation, customers, connections, gateway_stub
    ):
        customers.customers += [
            make_customer(id="today", phone="0111"),
            make_customer(id="tomorrow", dob=date(1990, 5, 16), phone="0112"),
            make_customer(id="no-phone", phone=None),
            make_customer(id="no-dob", dob=None, phone="0113"),
        ]
        connections.connections.append(make_connection())

        report = await automation.run(mode=MODE_DAILY)

        assert report.sent == 1
        assert gateway_stub.numbers == ["60111"]

    async def test_pauses_between_sends_not_before_first(
        self, automation, customers, connections, sleep
    ):
        customers.customers += [make_customer(id=f"c{i}", phone=f"01{i}") for i in range(3)]
        connections.connections.append(make_connection())

        report = await automation.run(mode=MODE_DAILY)

        assert report.sent == 3
        assert sleep.calls == [1.0, 1.0]

    async def test_second_run_same_day_sends_nothing(
        self, automation, customers, connections, gateway_stub
    ):
        customers.customers.append(make_customer())
        connections.connections.append(make_connection())

        await automation.run(mode=MODE_DAILY)
        report = await automation.run(mode=MODE_DAILY)

        assert report.sent == 0
        assert report.already_sent == 1
        assert len(gateway_stub.requests) == 1

    async def test_failures_are_counted_and_reported(
        self, automation, customers, connections, gateway_stub
    ):
        customers.customers += [make_customer(id="bad", phone="0111"), make_customer(id="ok")]
        connections.connections.append(make_connection())
        gateway_stub.queue(httpx.Response(200, json={"status": False, "msg": "device offline"}))

        report = await automation.run(mode=MODE_DAILY)

        assert report.failed == 1
        assert report.sent == 1
        assert "Customer bad: device offline" in report.errors

    async def test_disconnected_connection_is_not_used(
        self, automation, customers, connections, gateway_stub
    ):
        customers.customers.append(make_customer())
        connections.connections.append(make_connection(device_status=DEVICE_DISCONNECTED))

        report = await automation.run(mode=MODE_DAILY)

        assert report.tenants[0].status == TENANT_ERROR
        assert gateway_stub.requests == []

    async def test_reference_date_is_computed_in_canonical_timezone(self, customers, runner):
        # 17:00 UTC on 14 May is already 15 May in Kuala Lumpur
        automation = BirthdayAutomation(
            customers=customers,
            runner=runner,
            clock=lambda: datetime(2026, 5, 14, 17, 0, tzinfo=UTC),
        )
        assert automation.today() == TODAY

    async def test_explicit_reference_date(self, automation, customers, connections):
        customers.customers.append(make_customer(dob=date(2000, 2, 29)))
        connections.connections.append(make_connection())

        report = await automation.run(mode=MODE_DAILY, reference_date=date(2026, 3, 1))

        assert report.sent == 1
        assert report.reference_date == date(2026, 3, 1)

    async def test_unknown_mode_is_rejected(self, automation):
        with pytest.raises(ValueError):
            await automation.run(mode="weekly")

    async def test_tenant_exception_does_not_abort_run(
        self, automation, customers, connections, monkeypatch
    ):
        customers.customers += [
            make_customer(user_id="tenant-a", id="a1"),
            make_customer(user_id="tenant-b", id="b1"),
        ]
        connections.connections.append(make_connection(user_id="tenant-b"))
        original = connections.get_active

        async def flaky(user_id):
            if user_id == "tenant-a":
                raise ConnectionError("database went away")
            return await original(user_id)

        monkeypatch.setattr(connections, "get_active", flaky)

        report = await automation.run(mode=MODE_DAILY)

        assert report.sent == 1
        assert any("tenant-a" in e for e in report.errors)


class TestScheduledMode:
    async def test_due_tenant_is_processed(self, automation, customers, connections):
        customers.customers.append(make_customer())
        connections.connections.append(make_connection())

        report = await automation.run(mode=MODE_SCHEDULED)

        assert report.tenants[0].status == TENANT_PROCESSED
        assert report.sent == 1

    async def test_disabled_tenant_is_skipped(
        self, automation, customers, connections, settings_repo, gateway_stub
    ):
        customers.customers.append(make_customer())
        connections.connections.append(make_connection())
        await settings_repo.upsert("user-1", auto_send_enabled=False)

        report = await automation.run(mode=MODE_SCHEDULED)

        assert report.tenants[0].status == TENANT_DISABLED
        assert report.processed == 0
        assert gateway_stub.requests == []

    async def test_tenant_not_due_yet(
        self, automation, customers, connections, settings_repo, gateway_stub
    ):
        customers.customers.append(make_customer())
        connections.connections.append(make_connection())
        await settings_repo.upsert("user-1", send_time=time(10, 0))

        report = await automation.run(mode=MODE_SCHEDULED)

        assert report.tenants[0].status == TENANT_NOT_DUE
        assert gateway_stub.requests == []

    async def test_daily_mode_ignores_gate(
        self, automation, customers, connections, settings_repo
    ):
        customers.customers.append(make_customer())
        connections.connections.append(make_connection())
        await settings_repo.upsert("user-1", auto_send_enabled=False, send_time=time(10, 0))

        report = await automation.run(mode=MODE_DAILY)

        assert report.sent == 1

    async def test_tenant_template_is_used(
        self, automation, customers, connections, settings_repo, gateway_stub
    ):
        customers.customers.append(make_customer(name="Ali", age=30))
        connections.connections.append(make_connection())
        await settings_repo.upsert("user-1", default_template="Hi {Name}, age {Age}!")

        await automation.run(mode=MODE_DAILY)

        assert gateway_stub.requests[0]["json"]["message"] == "Hi Ali, age 30!"
