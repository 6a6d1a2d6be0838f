"""Listing endpoints.

POST /v1/listings - Farmer lists produce (also records a price observation)
"""

from fastapi import APIRouter, Depends

from umoja.auth import require_role
from umoja.models.enums import Role
from umoja.schemas import CreateListingRequest, ListingResponse
from umoja.services.caller import CallerContext
from umoja.services.listings import create_listing

router = APIRouter()


@router.post("", response_model=ListingResponse, status_code=201)
async def post_listing(
    request: CreateListingRequest,
    caller: CallerContext = Depends(require_role(Role.FARMER)),
) -> ListingResponse:
    listing = await create_listing(
        caller,
        title=request.title,
        description=request.description,
        crop_name=request.crop_name,
        quantity_available=request.quantity_available,
        unit=request.unit,
        price_per_unit=request.price_per_unit,
        pickup_county=request.pickup_county,
    )
    return ListingResponse.model_validate(listing)
