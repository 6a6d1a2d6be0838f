"""Tests for trust score recalculation against the store."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from umoja.models import Rating, TrustScore
from umoja.models.enums import FulfillmentStatus, PaymentStatus, Role, TrustTier, VerificationStatus
from umoja.services.errors import NotFoundError
from umoja.services.trust_engine import TrustScoreEngine, recalculate_safely
from umoja.stores.postgres import get_session

PAID_AT = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


async def _completed_order(factory, listing, buyer, *, confirm_after: timedelta):
    return await factory.order(
        listing,
        buyer,
        payment_status=PaymentStatus.PAID,
        fulfillment_status=FulfillmentStatus.COMPLETED,
        paid_at=PAID_AT,
        confirmed_at=PAID_AT + confirm_after,
        received_at=PAID_AT + confirm_after + timedelta(hours=2),
    )


async def _rate(order, score: int) -> None:
    async with get_session() as session:
        session.add(Rating(order_id=order.id, farmer_id=order.farmer_id, buyer_id=order.buyer_id, score=score))


@pytest.mark.asyncio
async def test_recalculate_reads_all_signal_groups(factory):
    farmer = await factory.user(Role.FARMER, verification_status=VerificationStatus.APPROVED)
    buyer = await factory.user(Role.BUYER)
    listing = await factory.listing(farmer, price=45.0)

    orders = [
        await _completed_order(factory, listing, buyer, confirm_after=timedelta(hours=1)),
        await _completed_order(factory, listing, buyer, confirm_after=timedelta(hours=3)),
        await _completed_order(factory, listing, buyer, confirm_after=timedelta(hours=30)),
    ]
    for order, score in zip(orders, (5, 4, 3)):
        await _rate(order, score)

    result = await TrustScoreEngine().recalculate(farmer.id)

    assert result.signals.completed_orders == 3
    assert result.signals.total_volume == pytest.approx(1350.0)
    assert result.signals.total_ratings == 3
    assert result.signals.average_rating == pytest.approx(4.0)
    assert result.signals.on_time_confirmation_rate == pytest.approx(2 / 3)
    assert result.breakdown.verification_score == 40
    assert result.breakdown.rating_score == 15
    # 40 + 1.527 + 15 + 8.0
    assert result.breakdown.composite_score == 65
    assert result.breakdown.tier == TrustTier.TRUSTED

    async with get_session() as session:
        record = await session.scalar(select(TrustScore).where(TrustScore.farmer_id == farmer.id))
    assert record.composite_score == 65
    assert record.tier == TrustTier.TRUSTED


@pytest.mark.asyncio
async def test_recalculate_is_idempotent_and_keeps_one_row(factory):
    farmer = await factory.user(Role.FARMER, verification_status=VerificationStatus.APPROVED)
    buyer = await factory.user(Role.BUYER)
    listing = await factory.listing(farmer)
    await _completed_order(factory, listing, buyer, confirm_after=timedelta(hours=2))

    engine = TrustScoreEngine()
    now = datetime(2026, 3, 2, tzinfo=timezone.utc)
    first = await engine.recalculate(farmer.id, now=now)
    second = await engine.recalculate(farmer.id, now=now)

    assert first.signals == second.signals
    assert first.breakdown == second.breakdown

    async with get_session() as session:
        rows = await session.scalar(select(func.count(TrustScore.id)).where(TrustScore.farmer_id == farmer.id))
    assert rows == 1


@pytest.mark.asyncio
async def test_recalculate_replaces_previous_record(factory):
    farmer = await factory.user(Role.FARMER)
    buyer = await factory.user(Role.BUYER)
    listing = await factory.listing(farmer)
    engine = TrustScoreEngine()

    before = await engine.recalculate(farmer.id)
    assert before.signals.completed_orders == 0

    await _completed_order(factory, listing, buyer, confirm_after=timedelta(hours=1))
    after = await engine.recalculate(farmer.id)

    assert after.signals.completed_orders == 1
    async with get_session() as session:
        record = await session.scalar(select(TrustScore).where(TrustScore.farmer_id == farmer.id))
    assert record.completed_orders == 1


@pytest.mark.asyncio
async def test_unresolved_dispute_counts_against_farmer(factory):
    farmer = await factory.user(Role.FARMER)
    buyer = await factory.user(Role.BUYER)
    listing = await factory.listing(farmer)
    await factory.order(
        listing,
        buyer,
        payment_status=PaymentStatus.PAID,
        fulfillment_status=FulfillmentStatus.DISPUTED,
        paid_at=PAID_AT,
        confirmed_at=PAID_AT + timedelta(hours=1),
    )

    result = await TrustScoreEngine().recalculate(farmer.id)

    assert result.signals.dispute_count == 1
    assert result.signals.disputes_ruled_against == 1
    # 12 - 2 - 5
    assert result.breakdown.reliability_score == pytest.approx(5.0)


@pytest.mark.asyncio
async def test_unknown_farmer_raises(factory):
    with pytest.raises(NotFoundError):
        await TrustScoreEngine().recalculate(9999)


@pytest.mark.asyncio
async def test_recalculate_safely_swallows_failures(factory):
    assert await recalculate_safely(TrustScoreEngine(), 9999, trigger="test") is False
