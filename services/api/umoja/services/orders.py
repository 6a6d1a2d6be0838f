"""Purchase flow and payment callbacks.

create_order() writes the order first and then asks the payment gateway to
prompt the buyer; if that initiation fails the order is deleted before
anyone has seen it. apply_payment_result() is driven by the gateway's
at-least-once callback and must be safe to replay.
"""

import asyncio
from dataclasses import dataclass
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from umoja.models import Listing, Order, User
from umoja.models.enums import FulfillmentType, ListingStatus, PaymentStatus, Role
from umoja.models.order import format_reference_id
from umoja.services.caller import CallerContext
from umoja.services.clock import utcnow
from umoja.services.errors import (
    ExternalServiceError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    StateConflictError,
)
from umoja.services.payment_client import PaymentGateway, get_payment_gateway
from umoja.services.sms_client import NotificationGateway, get_sms_gateway
from umoja.services.tasks import SideEffectDispatcher, get_dispatcher
from umoja.settings import get_settings
from umoja.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")


async def create_order(
    caller: CallerContext,
    *,
    listing_id: int,
    quantity: float,
    fulfillment_type: FulfillmentType,
    buyer_phone: str,
    gateway: PaymentGateway | None = None,
) -> Order:
    """Create an order from an available listing and start payment.

    Raises:
        ForbiddenError: caller is not a buyer.
        NotFoundError: listing does not exist.
        StateConflictError: listing unavailable or not enough stock.
        ExternalServiceError: payment initiation failed (order rolled back).
    """
    if caller.role != Role.BUYER:
        raise ForbiddenError("Only buyers can place orders")
    if quantity <= 0:
        raise InvalidInputError("Quantity must be positive", detail={"field": "quantity"})

    now = utcnow()
    async with get_session() as session:
        listing = await session.get(Listing, listing_id)
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found", code="LISTING_NOT_FOUND")
        if listing.status != ListingStatus.AVAILABLE:
            raise StateConflictError("This listing is no longer available", code="LISTING_UNAVAILABLE")
        if quantity > listing.quantity_available:
            raise StateConflictError(
                "The requested quantity is no longer available.",
                code="ORDER_INSUFFICIENT_STOCK",
                detail={"available": listing.quantity_available},
            )

        order = Order(
            listing_id=listing.id,
            farmer_id=listing.farmer_id,
            buyer_id=caller.user_id,
            crop_name=listing.crop_name,
            quantity=quantity,
            unit=listing.unit,
            price_per_unit=listing.price_per_unit,
            total_amount=round(quantity * listing.price_per_unit, 2),
            fulfillment_type=fulfillment_type,
            buyer_phone=buyer_phone,
        )
        session.add(order)
        await session.flush()
        order.reference_id = format_reference_id(order.id, now.year)
        await session.flush()
        await session.refresh(order)

    gateway = gateway or get_payment_gateway()
    try:
        checkout_id = await gateway.initiate(
            amount=order.total_amount,
            phone=buyer_phone,
            reference=order.reference_id,
            description=f"UmojaHub {order.crop_name}",
        )
    except ExternalServiceError:
        await _discard_order(order.id)
        logger.error(f"[orders] payment initiation failed, order rolled back reference={order.reference_id}")
        raise

    async with get_session() as session:
        stored = await session.get(Order, order.id)
        stored.checkout_request_id = checkout_id
        await session.flush()
        await session.refresh(stored)

    logger.info(f"[orders] created reference={stored.reference_id} buyer_id={caller.user_id} checkout={checkout_id}")
    return stored


async def _discard_order(order_id: int) -> None:
    async with get_session() as session:
        await session.execute(delete(Order).where(Order.id == order_id))


@dataclass(frozen=True)
class PaymentOutcome:
    status: str  # paid | failed | unknown_checkout | duplicate | already_settled | missing_transaction
    order_id: int | None = None


async def apply_payment_result(
    *,
    checkout_request_id: str,
    result_code: int,
    transaction_id: str | None,
    dispatcher: SideEffectDispatcher | None = None,
    gateway: NotificationGateway | None = None,
) -> PaymentOutcome:
    """Record a payment callback; replays are acknowledged without writes."""
    async with get_session() as session:
        order = await session.scalar(select(Order).where(Order.checkout_request_id == checkout_request_id))
        if order is None:
            logger.warning(f"[payments] no order for checkout={checkout_request_id}")
            return PaymentOutcome("unknown_checkout")

        if order.payment_status != PaymentStatus.PENDING_PAYMENT:
            logger.info(f"[payments] order already settled order_id={order.id} status={order.payment_status.value}")
            return PaymentOutcome("already_settled", order.id)

        if result_code != 0:
            order.payment_status = PaymentStatus.FAILED
            logger.info(f"[payments] payment failed order_id={order.id} result_code={result_code}")
            return PaymentOutcome("failed", order.id)

        if not transaction_id:
            logger.error(f"[payments] successful callback without transaction id order_id={order.id}")
            return PaymentOutcome("missing_transaction", order.id)

        seen = await session.scalar(select(Order.id).where(Order.payment_transaction_id == transaction_id))
        if seen is not None:
            logger.warning(f"[payments] duplicate callback transaction={transaction_id}")
            return PaymentOutcome("duplicate", seen)

        order.payment_status = PaymentStatus.PAID
        order.payment_transaction_id = transaction_id
        order.paid_at = utcnow()
        order_id = order.id
        try:
            await session.flush()
        except IntegrityError:
            # Another delivery of the same transaction committed first
            await session.rollback()
            logger.warning(f"[payments] duplicate callback transaction={transaction_id}")
            return PaymentOutcome("duplicate", order_id)

    logger.info(f"[payments] payment confirmed order_id={order_id} transaction={transaction_id}")

    try:
        sms = gateway or get_sms_gateway()
        (dispatcher or get_dispatcher()).submit(
            "payment_notifications",
            lambda: notify_payment_confirmed(order_id, sms),
            order_id=order_id,
        )
    except Exception:
        logger.exception(f"[payments] failed to queue notifications order_id={order_id}")
    return PaymentOutcome("paid", order_id)


async def notify_payment_confirmed(order_id: int, gateway: NotificationGateway) -> None:
    async with get_session() as session:
        order = await session.get(Order, order_id)
        if order is None:
            return
        farmer = await session.get(User, order.farmer_id)
        buyer = await session.get(User, order.buyer_id)

    if farmer is not None:
        await _send_safely(
            gateway,
            farmer.phone_number,
            f"UmojaHub: New order confirmed! Order {order.reference_id} for {order.crop_name} has been paid. "
            "Please prepare for fulfillment.",
            order_id=order_id,
        )
    if buyer is not None:
        await _send_safely(
            gateway,
            buyer.phone_number,
            f"UmojaHub: Payment confirmed! Your order {order.reference_id} (KES {order.total_amount:g}) has been "
            f"received. The farmer will prepare your {order.crop_name}.",
            order_id=order_id,
        )


async def _send_safely(gateway: NotificationGateway, recipient: str, message: str, *, order_id: int) -> None:
    timeout = get_settings().sms_timeout_seconds + 5
    try:
        result = await asyncio.wait_for(gateway.send(recipient, message), timeout=timeout)
    except Exception:
        logger.exception(f"[payments] notification dispatch failed order_id={order_id} to={recipient}")
        return
    if not result.success:
        logger.warning(f"[payments] notification not delivered order_id={order_id} to={recipient}")
