"""Rating gate: one rating per completed order, by that order's buyer."""

from dataclasses import dataclass
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from umoja.models import Order, Rating
from umoja.models.enums import FulfillmentStatus, Role
from umoja.services.caller import CallerContext
from umoja.services.errors import (
    DuplicateRatingError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    StateConflictError,
)
from umoja.services.tasks import SideEffectDispatcher, get_dispatcher
from umoja.services.trust_engine import TrustScoreEngine, recalculate_safely
from umoja.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")

MIN_SCORE = 1
MAX_SCORE = 5
MAX_COMMENT_LENGTH = 500


@dataclass(frozen=True)
class RatingResult:
    rating_id: int
    farmer_id: int
    average_rating: float
    total_ratings: int


class RatingGate:
    def __init__(
        self,
        dispatcher: SideEffectDispatcher | None = None,
        trust_engine: TrustScoreEngine | None = None,
    ):
        self.dispatcher = dispatcher
        self.trust_engine = trust_engine or TrustScoreEngine()

    async def submit_rating(
        self,
        order_id: int,
        caller: CallerContext,
        score: int,
        comment: str | None = None,
    ) -> RatingResult:
        """Persist the buyer's rating, then queue the farmer's recalculation.

        Raises:
            InvalidInputError: score outside 1-5 or comment too long.
            NotFoundError: order does not exist.
            ForbiddenError: caller is not the order's buyer.
            StateConflictError: order is not COMPLETED.
            DuplicateRatingError: the order already has a rating.
        """
        if not MIN_SCORE <= score <= MAX_SCORE:
            raise InvalidInputError("Score must be between 1 and 5", detail={"field": "score"})
        if comment is not None and len(comment) > MAX_COMMENT_LENGTH:
            raise InvalidInputError("Comment is too long", detail={"field": "comment"})

        try:
            async with get_session() as session:
                order = await session.get(Order, order_id)
                if order is None:
                    raise NotFoundError(f"Order {order_id} not found", code="ORDER_NOT_FOUND")
                if caller.role != Role.BUYER or not caller.is_party(order.buyer_id):
                    raise ForbiddenError("Only the order's buyer can rate it")
                if order.fulfillment_status != FulfillmentStatus.COMPLETED:
                    raise StateConflictError(
                        "Order must be completed before it can be rated",
                        code="ORDER_NOT_COMPLETED",
                        detail={"current": order.fulfillment_status.value},
                    )

                existing = await session.scalar(select(Rating.id).where(Rating.order_id == order_id))
                if existing is not None:
                    raise DuplicateRatingError("This order has already been rated")

                rating = Rating(
                    order_id=order_id,
                    farmer_id=order.farmer_id,
                    buyer_id=caller.user_id,
                    score=score,
                    comment=comment,
                )
                session.add(rating)
                await session.flush()

                count, average = (
                    await session.execute(
                        select(func.count(Rating.id), func.avg(Rating.score)).where(
                            Rating.farmer_id == order.farmer_id
                        )
                    )
                ).one()
                farmer_id = order.farmer_id
                rating_id = rating.id
        except IntegrityError as e:
            # Concurrent submission won the unique(order_id) race
            raise DuplicateRatingError("This order has already been rated") from e

        logger.info(f"[ratings] order_id={order_id} rating_id={rating_id} score={score} farmer_id={farmer_id}")
        self._queue_recalculation(farmer_id, order_id)

        return RatingResult(
            rating_id=rating_id,
            farmer_id=farmer_id,
            average_rating=round(float(average or 0.0), 1),
            total_ratings=int(count or 0),
        )

    def _queue_recalculation(self, farmer_id: int, order_id: int) -> None:
        engine = self.trust_engine
        try:
            dispatcher = self.dispatcher or get_dispatcher()
            dispatcher.submit(
                "rating_recalculation",
                lambda: recalculate_safely(engine, farmer_id, trigger="rating"),
                farmer_id=farmer_id,
                order_id=order_id,
            )
        except Exception:
            logger.exception(f"[ratings] failed to queue recalculation farmer_id={farmer_id}")
