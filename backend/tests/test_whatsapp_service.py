from datetime import time

import pytest

from api.services.errors import NoActiveConnectionError
from api.services.whatsapp_service import (
    TEST_MESSAGE,
    InvalidSettingsError,
    WhatsAppService,
    connection_to_dict,
    parse_send_time,
)
from shared.models.whatsapp import DEFAULT_MESSAGE_TEMPLATE, DEFAULT_SEND_TIME

from .fakes import make_connection


@pytest.fixture
def service(connections, settings_repo, gateway):
    return WhatsAppService(connections=connections, settings=settings_repo, gateway=gateway)


class TestParseSendTime:
    @pytest.mark.parametrize(
        "raw,expected", [("08:00", time(8, 0)), ("23:59:30", time(23, 59, 30)), (" 7:05", None)]
    )
    def test_formats(self, raw, expected):
        if expected is None:
            with pytest.raises(InvalidSettingsError):
                parse_send_time(raw)
        else:
            assert parse_send_time(raw) == expected

    @pytest.mark.parametrize("raw", ["24:00", "12:60", "noon", ""])
    def test_rejects_invalid(self, raw):
        with pytest.raises(InvalidSettingsError):
            parse_send_time(raw)


class TestSettings:
    async def test_defaults_when_never_saved(self, service):
        settings = await service.get_settings("user-1")
        assert settings.auto_send_enabled
        assert settings.send_time == DEFAULT_SEND_TIME
        assert settings.default_template == DEFAULT_MESSAGE_TEMPLATE
        assert not settings.is_persisted

    async def test_partial_update_keeps_other_fields(self, service):
        await service.update_settings("user-1", send_time="09:30")
        updated = await service.update_settings("user-1", auto_send_enabled=False)
        assert updated.send_time == time(9, 30)
        assert updated.auto_send_enabled is False

    async def test_rejects_unknown_timezone(self, service):
        with pytest.raises(InvalidSettingsError):
            await service.update_settings("user-1", timezone="Not/AZone")

    async def test_rejects_blank_template(self, service):
        with pytest.raises(InvalidSettingsError):
            await service.update_settings("user-1", default_template="   ")


class TestSendTest:
    async def test_defaults_to_sender_number_and_test_message(
        self, service, connections, gateway_stub
    ):
        connections.connections.append(make_connection(sender_number="60111111111"))

        result = await service.send_test("user-1")

        assert result.success
        sent = gateway_stub.requests[0]["json"]
        assert sent["number"] == "60111111111"
        assert sent["message"] == TEST_MESSAGE

    async def test_normalizes_given_number(self, service, connections, gateway_stub):
        connections.connections.append(make_connection())
        await service.send_test("user-1", "012-345 6789", "hello")
        assert gateway_stub.numbers == ["60123456789"]

    async def test_requires_connection(self, service):
        with pytest.raises(NoActiveConnectionError):
            await service.send_test("user-1", "0123456789")


def test_connection_summary_hides_api_key():
    summary = connection_to_dict(make_connection(api_key="secret"))
    assert "api_key" not in summary
    assert "secret" not in summary.values()
