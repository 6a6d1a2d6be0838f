"""Trust score recalculation.

recalculate(farmer_id) reads the farmer's full current signal set, runs the
pure calculator and upserts the whole record. It is the single endpoint for
both triggers (order completion, new rating); concurrent runs for one farmer
are safe because each writes a complete record derived from fresh reads, so
whichever finishes last wins with a correct value.

Failures propagate to the caller, which logs them; recalculation never
aborts an order completion or a rating submission.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging

import redis
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from umoja.models import Order, Rating, TrustScore, User
from umoja.models.enums import FulfillmentStatus, PaymentStatus
from umoja.services.clock import as_utc, utcnow
from umoja.services.errors import NotFoundError
from umoja.services.trust import ScoreBreakdown, TrustSignals, calculate_composite_score
from umoja.stores.postgres import get_session
from umoja.stores.redis import invalidate_trust_score_cache

logger = logging.getLogger("uvicorn.error")

# Confirming within this window of payment counts as on time
ON_TIME_CONFIRMATION_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class RecalculationResult:
    farmer_id: int
    signals: TrustSignals
    breakdown: ScoreBreakdown
    calculated_at: datetime


async def fetch_signals(session: AsyncSession, farmer_id: int) -> TrustSignals:
    """Read the four signal groups for a farmer.

    Raises:
        NotFoundError: farmer does not exist.
    """
    farmer = await session.get(User, farmer_id)
    if farmer is None:
        raise NotFoundError(f"Farmer {farmer_id} not found", code="FARMER_NOT_FOUND")

    completed = (
        await session.execute(
            select(func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0.0))
            .where(Order.farmer_id == farmer_id)
            .where(Order.fulfillment_status == FulfillmentStatus.COMPLETED)
        )
    ).one()

    disputed = (
        await session.execute(
            select(Order.dispute_ruled_against_farmer)
            .where(Order.farmer_id == farmer_id)
            .where(Order.fulfillment_status == FulfillmentStatus.DISPUTED)
        )
    ).scalars().all()
    # Unresolved disputes count against the farmer until an admin rules otherwise
    ruled_against = sum(1 for ruling in disputed if ruling is None or ruling)

    ratings = (
        await session.execute(
            select(func.count(Rating.id), func.avg(Rating.score)).where(Rating.farmer_id == farmer_id)
        )
    ).one()

    return TrustSignals(
        verification_status=farmer.verification_status,
        completed_orders=int(completed[0] or 0),
        total_volume=float(completed[1] or 0.0),
        total_ratings=int(ratings[0] or 0),
        average_rating=float(ratings[1] or 0.0),
        on_time_confirmation_rate=await _on_time_confirmation_rate(session, farmer_id),
        dispute_count=len(disputed),
        disputes_ruled_against=ruled_against,
    )


async def _on_time_confirmation_rate(session: AsyncSession, farmer_id: int) -> float:
    result = await session.execute(
        select(Order.paid_at, Order.confirmed_by_farmer_at)
        .where(Order.farmer_id == farmer_id)
        .where(Order.payment_status == PaymentStatus.PAID)
    )
    rows = result.all()
    if not rows:
        # Benefit of the doubt for farmers with no paid orders yet
        return 1.0

    on_time = 0
    for paid_at, confirmed_at in rows:
        paid_at, confirmed_at = as_utc(paid_at), as_utc(confirmed_at)
        if paid_at and confirmed_at and confirmed_at - paid_at <= ON_TIME_CONFIRMATION_WINDOW:
            on_time += 1
    return on_time / len(rows)


def _upsert_statement(dialect_name: str, values: dict):
    insert = postgresql.insert if dialect_name == "postgresql" else sqlite.insert
    stmt = insert(TrustScore).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=[TrustScore.farmer_id],
        set_={
            **{key: stmt.excluded[key] for key in values if key != "farmer_id"},
            "updated_at": func.now(),
        },
    )


def _record_values(farmer_id: int, signals: TrustSignals, breakdown: ScoreBreakdown, now: datetime) -> dict:
    return {
        "farmer_id": farmer_id,
        "verification_score": breakdown.verification_score,
        "completed_orders": signals.completed_orders,
        "total_volume": signals.total_volume,
        "transaction_score": breakdown.transaction_score,
        "average_rating": signals.average_rating,
        "total_ratings": signals.total_ratings,
        "rating_score": breakdown.rating_score,
        "on_time_confirmation_rate": signals.on_time_confirmation_rate,
        "dispute_count": signals.dispute_count,
        "disputes_ruled_against": signals.disputes_ruled_against,
        "reliability_score": breakdown.reliability_score,
        "composite_score": breakdown.composite_score,
        "tier": breakdown.tier,
        "last_calculated_at": now,
    }


class TrustScoreEngine:
    """Fetch signals, compute, persist."""

    async def recalculate(self, farmer_id: int, *, now: datetime | None = None) -> RecalculationResult:
        """Recompute and replace the farmer's trust record.

        Args:
            farmer_id: Farmer whose score to recompute.
            now: Timestamp stamped as last_calculated_at (defaults to utcnow()).

        Returns:
            RecalculationResult with the inputs and the persisted breakdown.
        """
        now = now or utcnow()
        async with get_session() as session:
            signals = await fetch_signals(session, farmer_id)
            breakdown = calculate_composite_score(signals)
            values = _record_values(farmer_id, signals, breakdown, now)
            await session.execute(_upsert_statement(session.get_bind().dialect.name, values))

        await _invalidate_cache(farmer_id)
        logger.info(
            f"[trust] recalculated farmer_id={farmer_id} "
            f"composite={breakdown.composite_score} tier={breakdown.tier.value}"
        )
        return RecalculationResult(farmer_id=farmer_id, signals=signals, breakdown=breakdown, calculated_at=now)


async def _invalidate_cache(farmer_id: int) -> None:
    try:
        await invalidate_trust_score_cache(farmer_id)
    except (RuntimeError, redis.RedisError):
        # Redis may be unavailable in tests/local minimal env.
        return


async def recalculate_safely(engine: "TrustScoreEngine", farmer_id: int, *, trigger: str) -> bool:
    """Run a recalculation as a detached step: log failures, never raise."""
    try:
        await engine.recalculate(farmer_id)
    except Exception:
        logger.exception(f"[trust] recalculation failed farmer_id={farmer_id} trigger={trigger}")
        return False
    return True
