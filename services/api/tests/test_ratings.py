"""Tests for the rating gate."""

import asyncio

import pytest
from sqlalchemy import func, select

from umoja.models import Rating, TrustScore
from umoja.models.enums import FulfillmentStatus, PaymentStatus, Role
from umoja.services.errors import (
    DuplicateRatingError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    StateConflictError,
)
from umoja.services.ratings import RatingGate
from umoja.stores.postgres import get_session


async def _completed_order(factory, farmer=None, buyer=None):
    farmer = farmer or await factory.user(Role.FARMER)
    buyer = buyer or await factory.user(Role.BUYER)
    listing = await factory.listing(farmer)
    order = await factory.order(
        listing,
        buyer,
        payment_status=PaymentStatus.PAID,
        fulfillment_status=FulfillmentStatus.COMPLETED,
    )
    return farmer, buyer, order


async def _rating_count(order_id: int) -> int:
    async with get_session() as session:
        return await session.scalar(select(func.count(Rating.id)).where(Rating.order_id == order_id))


@pytest.mark.asyncio
async def test_buyer_rates_completed_order(factory, dispatcher):
    farmer, buyer, order = await _completed_order(factory)

    result = await RatingGate().submit_rating(order.id, factory.caller(buyer), 5, "Fresh maize")

    assert result.farmer_id == farmer.id
    assert result.average_rating == 5.0
    assert result.total_ratings == 1


@pytest.mark.asyncio
async def test_average_covers_all_of_the_farmers_ratings(factory, dispatcher):
    farmer, buyer, first = await _completed_order(factory)
    _, _, second = await _completed_order(factory, farmer=farmer, buyer=buyer)

    gate = RatingGate()
    await gate.submit_rating(first.id, factory.caller(buyer), 5)
    result = await gate.submit_rating(second.id, factory.caller(buyer), 2)

    assert result.total_ratings == 2
    assert result.average_rating == 3.5


@pytest.mark.asyncio
async def test_second_rating_for_same_order_is_rejected(factory, dispatcher):
    _, buyer, order = await _completed_order(factory)
    gate = RatingGate()
    await gate.submit_rating(order.id, factory.caller(buyer), 4)

    with pytest.raises(DuplicateRatingError) as exc_info:
        await gate.submit_rating(order.id, factory.caller(buyer), 1)

    assert exc_info.value.code == "RATING_DUPLICATE"
    assert await _rating_count(order.id) == 1


@pytest.mark.asyncio
async def test_concurrent_submissions_store_one_rating(factory, dispatcher):
    _, buyer, order = await _completed_order(factory)
    gate = RatingGate()

    results = await asyncio.gather(
        gate.submit_rating(order.id, factory.caller(buyer), 5),
        gate.submit_rating(order.id, factory.caller(buyer), 1),
        return_exceptions=True,
    )

    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], DuplicateRatingError)
    assert await _rating_count(order.id) == 1


@pytest.mark.asyncio
async def test_order_not_yet_completed(factory, dispatcher):
    farmer = await factory.user(Role.FARMER)
    buyer = await factory.user(Role.BUYER)
    listing = await factory.listing(farmer)
    order = await factory.order(
        listing,
        buyer,
        payment_status=PaymentStatus.PAID,
        fulfillment_status=FulfillmentStatus.IN_FULFILLMENT,
    )

    with pytest.raises(StateConflictError) as exc_info:
        await RatingGate().submit_rating(order.id, factory.caller(buyer), 5)

    assert exc_info.value.code == "ORDER_NOT_COMPLETED"
    assert await _rating_count(order.id) == 0


@pytest.mark.asyncio
async def test_only_the_orders_buyer_may_rate(factory, dispatcher):
    farmer, _, order = await _completed_order(factory)
    other_buyer = await factory.user(Role.BUYER)

    with pytest.raises(ForbiddenError):
        await RatingGate().submit_rating(order.id, factory.caller(other_buyer), 5)
    with pytest.raises(ForbiddenError):
        await RatingGate().submit_rating(order.id, factory.caller(farmer), 5)


@pytest.mark.asyncio
async def test_unknown_order(factory, dispatcher):
    buyer = await factory.user(Role.BUYER)
    with pytest.raises(NotFoundError) as exc_info:
        await RatingGate().submit_rating(9999, factory.caller(buyer), 5)
    assert exc_info.value.code == "ORDER_NOT_FOUND"


@pytest.mark.asyncio
@pytest.mark.parametrize("score,comment", [(0, None), (6, None), (3, "x" * 501)])
async def test_invalid_input(factory, score, comment):
    _, buyer, order = await _completed_order(factory)
    with pytest.raises(InvalidInputError):
        await RatingGate().submit_rating(order.id, factory.caller(buyer), score, comment)


@pytest.mark.asyncio
async def test_rating_queues_trust_recalculation(factory, dispatcher):
    farmer, buyer, order = await _completed_order(factory)

    await RatingGate().submit_rating(order.id, factory.caller(buyer), 5)
    await dispatcher.join()

    async with get_session() as session:
        record = await session.scalar(select(TrustScore).where(TrustScore.farmer_id == farmer.id))
    assert record is not None
    assert record.total_ratings == 1
    # Fewer than three ratings earn no rating points yet
    assert record.rating_score == 0


@pytest.mark.asyncio
async def test_third_rating_starts_scoring(factory, dispatcher):
    farmer = await factory.user(Role.FARMER)
    buyer = await factory.user(Role.BUYER)
    gate = RatingGate()
    for _ in range(3):
        _, _, order = await _completed_order(factory, farmer=farmer, buyer=buyer)
        await gate.submit_rating(order.id, factory.caller(buyer), 5)
        await dispatcher.join()

    async with get_session() as session:
        record = await session.scalar(select(TrustScore).where(TrustScore.farmer_id == farmer.id))
    assert record.total_ratings == 3
    assert record.average_rating == 5.0
    assert record.rating_score == 20
