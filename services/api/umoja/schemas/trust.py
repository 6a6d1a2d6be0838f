"""Schemas for the farmer trust-score read surface."""

from datetime import datetime

from pydantic import BaseModel, Field

from umoja.models.enums import TrustTier


class TrustScoreResponse(BaseModel):
    """Persisted trust record (0-100 composite)."""

    farmer_id: int = Field(alias="farmerId")
    composite_score: int = Field(alias="compositeScore", ge=0, le=100)
    tier: TrustTier
    verification_score: int = Field(alias="verificationScore")
    transaction_score: float = Field(alias="transactionScore")
    rating_score: int = Field(alias="ratingScore")
    reliability_score: float = Field(alias="reliabilityScore")
    completed_orders: int = Field(alias="completedOrders")
    total_volume: float = Field(alias="totalVolume")
    average_rating: float = Field(alias="averageRating")
    total_ratings: int = Field(alias="totalRatings")
    on_time_confirmation_rate: float = Field(alias="onTimeConfirmationRate")
    dispute_count: int = Field(alias="disputeCount")
    disputes_ruled_against: int = Field(alias="disputesRuledAgainst")
    last_calculated_at: datetime = Field(alias="lastCalculatedAt")

    model_config = {"populate_by_name": True, "from_attributes": True}
