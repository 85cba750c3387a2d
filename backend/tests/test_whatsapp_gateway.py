import httpx

from api.services.whatsapp_gateway import GENERIC_FAILURE, classify_response


class TestClassifyResponse:
    def test_success_without_status_field(self):
        assert classify_response(200, {"msg": "ok"}).success

    def test_explicit_false_status_is_failure(self):
        result = classify_response(200, {"status": False, "msg": "Number not on WhatsApp"})
        assert not result.success
        assert result.error == "Number not on WhatsApp"
        assert not result.transport_error

    def test_reason_falls_back_to_message_field(self):
        result = classify_response(200, {"status": False, "message": "Invalid api key"})
        assert result.error == "Invalid api key"

    def test_generic_reason_when_none_given(self):
        assert classify_response(200, {"status": False}).error == GENERIC_FAILURE

    def test_non_2xx_is_failure_even_with_true_status(self):
        result = classify_response(500, {"status": True})
        assert not result.success
        assert result.status_code == 500

    def test_non_object_body_is_transport_error(self):
        result = classify_response(200, None)
        assert not result.success
        assert result.transport_error


class TestWhatsAppGatewayClient:
    async def test_posts_credentials_and_message(self, gateway, gateway_stub):
        result = await gateway.send_message(
            api_key="k", sender="60111111111", number="60123456789", message="Hi"
        )
        assert result.success
        assert gateway_stub.requests == [
            {
                "url": "https://gateway.test/send-message",
                "json": {
                    "api_key": "k",
                    "sender": "60111111111",
                    "number": "60123456789",
                    "message": "Hi",
                },
            }
        ]

    async def test_gateway_reported_failure(self, gateway, gateway_stub):
        gateway_stub.queue(httpx.Response(200, json={"status": False, "msg": "Device offline"}))
        result = await gateway.send_message(api_key="k", sender="s", number="n", message="m")
        assert not result.success
        assert result.error == "Device offline"

    async def test_html_error_page_is_transport_error(self, gateway, gateway_stub):
        gateway_stub.queue(httpx.Response(502, text="<html>Bad Gateway</html>"))
        result = await gateway.send_message(api_key="k", sender="s", number="n", message="m")
        assert not result.success
        assert result.transport_error
        assert result.status_code == 502

    async def test_timeout_does_not_raise(self, gateway, gateway_stub):
        gateway_stub.queue(httpx.ReadTimeout("timed out"))
        result = await gateway.send_message(api_key="k", sender="s", number="n", message="m")
        assert not result.success
        assert result.transport_error
        assert result.error == "Gateway timeout"

    async def test_connection_error_does_not_raise(self, gateway, gateway_stub):
        gateway_stub.queue(httpx.ConnectError("connection refused"))
        result = await gateway.send_message(api_key="k", sender="s", number="n", message="m")
        assert not result.success
        assert result.transport_error
