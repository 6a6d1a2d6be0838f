"""Produce listings."""

import logging

from umoja.models import Listing
from umoja.models.enums import ListingStatus, PriceObservationSource, Role
from umoja.services.caller import CallerContext
from umoja.services.errors import ForbiddenError, InvalidInputError
from umoja.services.prices import append_observation
from umoja.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")


async def create_listing(
    caller: CallerContext,
    *,
    title: str,
    crop_name: str,
    quantity_available: float,
    unit: str,
    price_per_unit: float,
    pickup_county: str,
    description: str | None = None,
) -> Listing:
    """Create a listing and record its asking price as an observation."""
    if caller.role != Role.FARMER:
        raise ForbiddenError("Only farmers can create listings")
    if quantity_available <= 0:
        raise InvalidInputError("Quantity must be positive", detail={"field": "quantity_available"})
    if price_per_unit <= 0:
        raise InvalidInputError("Price must be positive", detail={"field": "price_per_unit"})

    async with get_session() as session:
        listing = Listing(
            farmer_id=caller.user_id,
            title=title,
            description=description,
            crop_name=crop_name,
            quantity_available=quantity_available,
            unit=unit,
            price_per_unit=price_per_unit,
            pickup_county=pickup_county,
            status=ListingStatus.AVAILABLE,
        )
        session.add(listing)
        await session.flush()

        await append_observation(
            session,
            crop_name=crop_name,
            county=pickup_county,
            price_per_unit=price_per_unit,
            unit=unit,
            source=PriceObservationSource.LISTING_CREATED,
            farmer_id=caller.user_id,
            listing_id=listing.id,
        )
        await session.refresh(listing)

    logger.info(f"[listings] created listing_id={listing.id} farmer_id={caller.user_id} {crop_name}/{pickup_county}")
    return listing
