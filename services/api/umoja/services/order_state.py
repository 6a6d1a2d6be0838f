"""Order fulfillment state machine.

AWAITING_PAYMENT -> IN_FULFILLMENT -> COMPLETED. Every request is decided by
decide() before anything is written: either exactly one rule applies or the
request is rejected. DISPUTED is reserved in the data model but has no rule
here, so requesting it is always rejected.

Completion hands the order to the side-effect orchestrator through the
dispatcher once the status write has been committed.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
import logging

from sqlalchemy import select

from umoja.models import Order
from umoja.models.enums import FulfillmentStatus, PaymentStatus, Role
from umoja.services.caller import CallerContext
from umoja.services.clock import utcnow
from umoja.services.errors import ForbiddenError, InvalidInputError, NotFoundError, StateConflictError
from umoja.services.orchestrator import SideEffectOrchestrator
from umoja.services.tasks import SideEffectDispatcher, get_dispatcher
from umoja.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class TransitionRule:
    """Who may move an order into `target`, and from where."""

    target: FulfillmentStatus
    role: Role
    party_field: str  # Order attribute the caller's id must equal
    from_status: FulfillmentStatus
    stamp_field: str  # Order timestamp set when the rule applies
    payment_status: PaymentStatus | None = None
    completes_order: bool = False


TRANSITIONS: dict[FulfillmentStatus, TransitionRule] = {
    FulfillmentStatus.IN_FULFILLMENT: TransitionRule(
        target=FulfillmentStatus.IN_FULFILLMENT,
        role=Role.FARMER,
        party_field="farmer_id",
        from_status=FulfillmentStatus.AWAITING_PAYMENT,
        payment_status=PaymentStatus.PAID,
        stamp_field="confirmed_by_farmer_at",
    ),
    FulfillmentStatus.COMPLETED: TransitionRule(
        target=FulfillmentStatus.COMPLETED,
        role=Role.BUYER,
        party_field="buyer_id",
        from_status=FulfillmentStatus.IN_FULFILLMENT,
        stamp_field="received_by_buyer_at",
        completes_order=True,
    ),
}

# Buyers say "received"; the stored state is COMPLETED
_TARGET_ALIASES = {"RECEIVED": FulfillmentStatus.COMPLETED}


def parse_target(value: str) -> FulfillmentStatus:
    key = value.strip().upper()
    if key in _TARGET_ALIASES:
        return _TARGET_ALIASES[key]
    try:
        return FulfillmentStatus(key)
    except ValueError:
        raise InvalidInputError(f"Unknown fulfillment status: {value}", detail={"field": "status"}) from None


def decide(
    *,
    caller: CallerContext,
    target: FulfillmentStatus,
    farmer_id: int,
    buyer_id: int,
    payment_status: PaymentStatus,
    fulfillment_status: FulfillmentStatus,
) -> TransitionRule:
    """Return the rule that applies, or raise.

    Raises:
        ForbiddenError: caller has the wrong role or is not the order's party.
        StateConflictError: no rule for the target, or the order is not in
            the required payment/fulfillment state.
    """
    rule = TRANSITIONS.get(target)
    if rule is None:
        raise StateConflictError(
            f"Cannot move an order to {target.value}",
            detail={"current": fulfillment_status.value, "requested": target.value},
        )
    if caller.role != rule.role:
        raise ForbiddenError(f"Only the {rule.role.value.lower()} can move an order to {target.value}")

    party_id = farmer_id if rule.party_field == "farmer_id" else buyer_id
    if not caller.is_party(party_id):
        raise ForbiddenError("You are not a party to this order")

    if rule.payment_status is not None and payment_status != rule.payment_status:
        raise StateConflictError(
            "Order has not been paid",
            code="ORDER_NOT_PAID",
            detail={"payment_status": payment_status.value},
        )
    if fulfillment_status != rule.from_status:
        raise StateConflictError(
            f"Cannot move an order from {fulfillment_status.value} to {target.value}",
            detail={"current": fulfillment_status.value, "requested": target.value},
        )
    return rule


@dataclass(frozen=True)
class TransitionResult:
    order_id: int
    reference_id: str | None
    fulfillment_status: FulfillmentStatus
    changed_at: datetime


class OrderStateMachine:
    def __init__(
        self,
        dispatcher: SideEffectDispatcher | None = None,
        orchestrator_factory: Callable[[], SideEffectOrchestrator] = SideEffectOrchestrator,
    ):
        self.dispatcher = dispatcher
        self.orchestrator_factory = orchestrator_factory

    async def transition(
        self,
        order_id: int,
        caller: CallerContext,
        target: FulfillmentStatus,
        *,
        now: datetime | None = None,
    ) -> TransitionResult:
        """Validate and apply a fulfillment transition.

        Returns as soon as the status write is committed; completion side
        effects are only queued.
        """
        now = now or utcnow()

        async with get_session() as session:
            order = (
                await session.execute(select(Order).where(Order.id == order_id).with_for_update())
            ).scalar_one_or_none()
            if order is None:
                raise NotFoundError(f"Order {order_id} not found", code="ORDER_NOT_FOUND")

            rule = decide(
                caller=caller,
                target=target,
                farmer_id=order.farmer_id,
                buyer_id=order.buyer_id,
                payment_status=order.payment_status,
                fulfillment_status=order.fulfillment_status,
            )
            order.fulfillment_status = rule.target
            setattr(order, rule.stamp_field, now)
            reference_id = order.reference_id

        logger.info(
            f"[orders] order_id={order_id} -> {rule.target.value} by user_id={caller.user_id} ({caller.role.value})"
        )

        if rule.completes_order:
            self._hand_off(order_id)

        return TransitionResult(
            order_id=order_id,
            reference_id=reference_id,
            fulfillment_status=rule.target,
            changed_at=now,
        )

    def _hand_off(self, order_id: int) -> None:
        try:
            dispatcher = self.dispatcher or get_dispatcher()
            orchestrator = self.orchestrator_factory()
            queued = dispatcher.submit("order_completed", lambda: orchestrator.run(order_id), order_id=order_id)
        except Exception:
            logger.exception(f"[orders] failed to queue completion side effects order_id={order_id}")
            return
        if not queued:
            logger.error(f"[orders] completion side effects not queued order_id={order_id}")
