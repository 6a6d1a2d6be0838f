"""Pydantic schemas for API request/response validation."""

from umoja.schemas.common import ErrorDetail, ErrorResponse
from umoja.schemas.listings import CreateListingRequest, ListingResponse
from umoja.schemas.orders import (
    CreateOrderRequest,
    OrderResponse,
    PaymentAck,
    PaymentCallback,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from umoja.schemas.prices import (
    AlertListResponse,
    AlertResponse,
    CreateAlertRequest,
    PriceHistoryResponse,
    PriceObservationItem,
    PriceStatsResponse,
    SweepResponse,
)
from umoja.schemas.ratings import RatingRequest, RatingResponse
from umoja.schemas.trust import TrustScoreResponse

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "CreateListingRequest",
    "ListingResponse",
    "CreateOrderRequest",
    "OrderResponse",
    "PaymentAck",
    "PaymentCallback",
    "StatusUpdateRequest",
    "StatusUpdateResponse",
    "AlertListResponse",
    "AlertResponse",
    "CreateAlertRequest",
    "PriceHistoryResponse",
    "PriceObservationItem",
    "PriceStatsResponse",
    "SweepResponse",
    "RatingRequest",
    "RatingResponse",
    "TrustScoreResponse",
]
