"""SMS gateway client (Africa's Talking messaging API).

The notification contract is send(recipient, message) -> SendResult. It never
raises: transport errors, timeouts, non-2xx responses and undelivered
recipients are logged and reported as success=False so that trigger chains
can keep going.
"""

from dataclasses import dataclass
import logging
from typing import Protocol

import httpx

from umoja.settings import get_settings

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: str | None = None


class NotificationGateway(Protocol):
    """Anything that can deliver a text message to a recipient."""

    async def send(self, recipient: str, message: str) -> SendResult: ...


class SmsGateway:
    """Client for the Africa's Talking SMS endpoint."""

    def __init__(
        self,
        api_url: str | None = None,
        username: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_url = api_url or settings.sms_api_url
        self.username = username or settings.sms_username
        self.api_key = api_key if api_key is not None else settings.sms_api_key
        self.timeout = timeout or settings.sms_timeout_seconds
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def send(self, recipient: str, message: str) -> SendResult:
        """Send a single SMS.

        Args:
            recipient: Phone number in international format.
            message: Message body.

        Returns:
            SendResult with success flag and gateway message id when delivered.
        """
        if not self.api_key:
            logger.warning(f"[sms] API key not configured, dropping message to {recipient}")
            return SendResult(success=False)

        try:
            client = await self._get_client()
            resp = await client.post(
                self.api_url,
                data={"username": self.username, "to": recipient, "message": message},
                headers={"Accept": "application/json", "apiKey": self.api_key},
            )
        except httpx.HTTPError as e:
            logger.error(f"[sms] transport error to={recipient}: {e!r}")
            return SendResult(success=False)

        if resp.status_code >= 300:
            logger.error(f"[sms] gateway returned {resp.status_code} to={recipient}: {resp.text[:200]}")
            return SendResult(success=False)

        try:
            data = resp.json()
        except ValueError:
            logger.error(f"[sms] non-JSON gateway response to={recipient}")
            return SendResult(success=False)

        message_data = data.get("SMSMessageData") if isinstance(data, dict) else None
        if not isinstance(message_data, dict):
            logger.error(f"[sms] unexpected gateway response to={recipient}: {data!r}")
            return SendResult(success=False)

        recipients = message_data.get("Recipients") or []
        if not isinstance(recipients, list):
            recipients = []
        first = recipients[0] if recipients and isinstance(recipients[0], dict) else None
        if not first or first.get("status") != "Success":
            logger.error(f"[sms] delivery failed to={recipient}: {data}")
            return SendResult(success=False)

        message_id = first.get("messageId")
        logger.info(f"[sms] sent to={recipient} message_id={message_id}")
        return SendResult(success=True, message_id=message_id)


# Global client instance
_client: SmsGateway | None = None


def get_sms_gateway() -> SmsGateway:
    """Get or create SMS gateway singleton."""
    global _client
    if _client is None:
        _client = SmsGateway()
    return _client


async def close_sms_gateway() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None
