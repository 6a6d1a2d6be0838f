"""Farmer read surfaces.

GET /v1/farmers/{farmer_id}/trust-score - Persisted trust record (Redis-cached)
"""

import logging

from fastapi import APIRouter
import redis
from sqlalchemy import select

from umoja.models import TrustScore
from umoja.schemas import TrustScoreResponse
from umoja.services.errors import NotFoundError
from umoja.settings import get_settings
from umoja.stores.postgres import get_session
from umoja.stores.redis import get_trust_score_cache, set_trust_score_cache

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.get("/{farmer_id}/trust-score", response_model=TrustScoreResponse)
async def get_trust_score(farmer_id: int) -> TrustScoreResponse:
    try:
        cached = await get_trust_score_cache(farmer_id)
    except (RuntimeError, redis.RedisError):
        cached = None
    if cached:
        return TrustScoreResponse.model_validate(cached)

    async with get_session() as session:
        record = await session.scalar(select(TrustScore).where(TrustScore.farmer_id == farmer_id))
    if record is None:
        raise NotFoundError(f"No trust score for farmer {farmer_id}", code="TRUST_SCORE_NOT_FOUND")

    response = TrustScoreResponse.model_validate(record)
    try:
        await set_trust_score_cache(
            farmer_id,
            response.model_dump(mode="json", by_alias=True),
            ttl=get_settings().trust_cache_ttl_seconds,
        )
    except (RuntimeError, redis.RedisError) as e:
        logger.debug(f"[trust] cache write skipped farmer_id={farmer_id}: {e!r}")
    return response
