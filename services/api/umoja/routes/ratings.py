"""Rating endpoint.

POST /v1/ratings - Buyer rates a completed order (one rating per order)
"""

from fastapi import APIRouter, Depends

from umoja.auth import get_caller
from umoja.schemas import RatingRequest, RatingResponse
from umoja.services.caller import CallerContext
from umoja.services.ratings import RatingGate

router = APIRouter()


@router.post("", response_model=RatingResponse, status_code=201)
async def submit_rating(
    request: RatingRequest,
    caller: CallerContext = Depends(get_caller),
) -> RatingResponse:
    result = await RatingGate().submit_rating(request.order_id, caller, request.score, request.comment)
    return RatingResponse(
        rating_id=result.rating_id,
        farmer_id=result.farmer_id,
        average_rating=result.average_rating,
        total_ratings=result.total_ratings,
    )
