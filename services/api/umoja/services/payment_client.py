"""Payment gateway client (mobile-money STK push initiation).

Only initiation is modelled here; the gateway reports the outcome later
through the payment callback route. Unlike SMS, a failed initiation is on
the authoritative path: it raises ExternalServiceError and the caller rolls
back the order it just created.
"""

import logging
from typing import Any

import httpx

from umoja.services.errors import ExternalServiceError
from umoja.settings import get_settings

logger = logging.getLogger("uvicorn.error")


class PaymentGateway:
    """Client for the payment initiation endpoint."""

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_url = api_url or settings.payment_api_url
        self.api_key = api_key if api_key is not None else settings.payment_api_key
        self.timeout = timeout or settings.payment_timeout_seconds
        self._transport = transport

    async def initiate(self, *, amount: float, phone: str, reference: str, description: str) -> str:
        """Start a payment prompt on the buyer's phone.

        Returns:
            Gateway checkout request id used to correlate the callback.

        Raises:
            ExternalServiceError: gateway unreachable, timed out or refused.
        """
        if not self.api_url:
            raise ExternalServiceError(
                "Payment gateway is not configured",
                code="PAYMENT_INITIATION_FAILED",
            )

        payload: dict[str, Any] = {
            "amount": round(amount),
            "phone": phone,
            "reference": reference,
            "description": description,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[payments] initiation failed reference={reference}: {e!r}")
            raise ExternalServiceError(
                "Payment could not be initiated. Please try again.",
                code="PAYMENT_INITIATION_FAILED",
                detail={"reference": reference},
            ) from e

        checkout_id = None
        if isinstance(data, dict):
            checkout_id = data.get("CheckoutRequestID") or data.get("checkout_request_id")
        if not checkout_id:
            logger.error(f"[payments] initiation response missing checkout id reference={reference}: {data}")
            raise ExternalServiceError(
                "Payment could not be initiated. Please try again.",
                code="PAYMENT_INITIATION_FAILED",
                detail={"reference": reference},
            )
        return str(checkout_id)


def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway()
