"""WhatsApp gateway client"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to send message"


@dataclass
class DispatchResult:
    """Classified outcome of one gateway call.

    ``transport_error`` is True when the gateway could not be reached or
    answered with something that is not a JSON object; False when the
    gateway answered and reported the failure itself.
    """

    success: bool
    error: str | None = None
    error_code: str | None = None
    status_code: int | None = None
    transport_error: bool = False
    response: dict[str, Any] = field(default_factory=dict)


def classify_response(status_code: int, body: Any) -> DispatchResult:
    """Map an HTTP status and decoded body to a DispatchResult.

    Success requires a 2xx status and a ``status`` field that is not
    explicitly ``false``.
    """
    if not isinstance(body, dict):
        return DispatchResult(
            success=False,
            error=f"Malformed gateway response (HTTP {status_code})",
            status_code=status_code,
            transport_error=True,
        )

    if 200 <= status_code < 300 and body.get("status") is not False:
        return DispatchResult(success=True, status_code=status_code, response=body)

    reason = body.get("msg") or body.get("message") or body.get("error")
    code = body.get("code")
    if not reason:
        reason = GENERIC_FAILURE
        if not 200 <= status_code < 300:
            reason = f"{GENERIC_FAILURE} (HTTP {status_code})"
    return DispatchResult(
        success=False,
        error=str(reason),
        error_code=str(code) if code is not None else None,
        status_code=status_code,
        response=body,
    )


class WhatsAppGatewayClient:
    """Client for the unofficial WhatsApp HTTP gateway.

    One instance is shared per process; the underlying ``httpx.AsyncClient``
    keeps connections alive between sends.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._http.aclose()

    async def send_message(
        self, *, api_key: str, sender: str, number: str, message: str
    ) -> DispatchResult:
        """POST one text message. Never raises for gateway or network failures."""
        url = f"{self.base_url}send-message"
        payload = {
            "api_key": api_key,
            "sender": sender,
            "number": number,
            "message": message,
        }

        try:
            response = await self._http.post(url, json=payload)
        except httpx.TimeoutException:
            logger.error(f"Gateway timeout sending to {number}")
            return DispatchResult(success=False, error="Gateway timeout", transport_error=True)
        except httpx.HTTPError as e:
            logger.error(f"Gateway unreachable sending to {number}: {type(e).__name__}: {e}")
            return DispatchResult(
                success=False,
                error=f"Gateway unreachable: {type(e).__name__}",
                transport_error=True,
            )

        try:
            body = response.json()
        except ValueError:
            body = None

        result = classify_response(response.status_code, body)
        if not result.success:
            logger.warning(
                f"Gateway rejected message to {number}: "
                f"HTTP {response.status_code}, {result.error}"
            )
        return result
