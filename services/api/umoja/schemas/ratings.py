"""Schemas for rating submission."""

from pydantic import BaseModel, Field


class RatingRequest(BaseModel):
    order_id: int = Field(alias="orderId")
    score: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=500)

    model_config = {"populate_by_name": True}


class RatingResponse(BaseModel):
    rating_id: int = Field(alias="ratingId")
    farmer_id: int = Field(alias="farmerId")
    average_rating: float = Field(alias="averageRating")
    total_ratings: int = Field(alias="totalRatings")

    model_config = {"populate_by_name": True}
