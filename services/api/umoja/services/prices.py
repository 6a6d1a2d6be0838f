"""Price observations: append-only writes and the read surface.

Observations are written when a listing is created and when an order
completes. They are never updated or deleted.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from umoja.models import PriceObservation
from umoja.models.enums import PriceObservationSource
from umoja.services.clock import utcnow
from umoja.services.errors import InvalidInputError
from umoja.stores.postgres import get_session

HISTORY_WINDOWS_DAYS = (7, 30, 90)


@dataclass(frozen=True)
class PriceStats:
    count: int
    average: float | None
    minimum: float | None
    maximum: float | None


async def append_observation(
    session: AsyncSession,
    *,
    crop_name: str,
    county: str,
    price_per_unit: float,
    unit: str,
    source: PriceObservationSource,
    farmer_id: int | None = None,
    order_id: int | None = None,
    listing_id: int | None = None,
    recorded_at: datetime | None = None,
) -> PriceObservation:
    observation = PriceObservation(
        crop_name=crop_name,
        county=county,
        price_per_unit=price_per_unit,
        unit=unit,
        source=source,
        farmer_id=farmer_id,
        order_id=order_id,
        listing_id=listing_id,
        recorded_at=recorded_at or utcnow(),
    )
    session.add(observation)
    await session.flush()
    return observation


async def trailing_average(
    session: AsyncSession,
    *,
    crop_name: str,
    county: str,
    since: datetime,
) -> float | None:
    """Average observed price for crop/county since a cutoff, None without data."""
    avg = await session.scalar(
        select(func.avg(PriceObservation.price_per_unit))
        .where(PriceObservation.crop_name == crop_name)
        .where(PriceObservation.county == county)
        .where(PriceObservation.recorded_at >= since)
    )
    return float(avg) if avg is not None else None


async def price_history(
    crop_name: str,
    county: str,
    *,
    days: int = 30,
    now: datetime | None = None,
) -> tuple[list[PriceObservation], PriceStats]:
    """Observations for crop/county over the trailing window, oldest first.

    Raises:
        InvalidInputError: days is not one of 7, 30 or 90.
    """
    if days not in HISTORY_WINDOWS_DAYS:
        raise InvalidInputError(
            f"days must be one of {', '.join(str(d) for d in HISTORY_WINDOWS_DAYS)}",
            detail={"field": "days"},
        )

    since = (now or utcnow()) - timedelta(days=days)
    async with get_session() as session:
        result = await session.execute(
            select(PriceObservation)
            .where(PriceObservation.crop_name == crop_name)
            .where(PriceObservation.county == county)
            .where(PriceObservation.recorded_at >= since)
            .order_by(PriceObservation.recorded_at, PriceObservation.id)
        )
        observations = list(result.scalars().all())

    prices = [o.price_per_unit for o in observations]
    if not prices:
        return observations, PriceStats(count=0, average=None, minimum=None, maximum=None)
    return observations, PriceStats(
        count=len(prices),
        average=round(sum(prices) / len(prices), 2),
        minimum=min(prices),
        maximum=max(prices),
    )
