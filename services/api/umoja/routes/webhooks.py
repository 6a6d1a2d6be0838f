"""Inbound webhooks.

POST /v1/webhooks/payments - Payment gateway callback

The gateway retries anything that is not a 200, so every outcome (bad
signature, malformed body, unknown checkout, replay, internal error) is
acknowledged with 200 and a result code.
"""

import logging

from fastapi import APIRouter, Header, Request
from pydantic import ValidationError

from umoja.auth import SIGNATURE_HEADER, verify_payment_signature
from umoja.schemas import PaymentAck, PaymentCallback
from umoja.services.orders import apply_payment_result

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.post("/payments", response_model=PaymentAck)
async def payment_callback(
    request: Request,
    signature: str | None = Header(default=None, alias=SIGNATURE_HEADER),
) -> PaymentAck:
    body = await request.body()
    if not verify_payment_signature(body, signature):
        logger.error("[payments] invalid callback signature")
        return PaymentAck(result_code=1, result_desc="Invalid signature")

    try:
        callback = PaymentCallback.model_validate_json(body)
    except ValidationError as e:
        logger.error(f"[payments] invalid callback payload: {e.errors()}")
        return PaymentAck()

    try:
        outcome = await apply_payment_result(
            checkout_request_id=callback.checkout_request_id,
            result_code=callback.result_code,
            transaction_id=callback.transaction_id,
        )
    except Exception:
        logger.exception(f"[payments] callback handling failed checkout={callback.checkout_request_id}")
        return PaymentAck()

    if outcome.status == "duplicate":
        return PaymentAck(result_desc="Already processed")
    if outcome.status == "paid":
        return PaymentAck(result_desc="Success")
    return PaymentAck()
