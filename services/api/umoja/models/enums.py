"""Enumerations shared by the ORM models and the services."""

from enum import Enum


class Role(Enum):
    """Caller role carried in the access token."""

    FARMER = "FARMER"  # sells produce, owns listings and price alerts
    BUYER = "BUYER"
    ADMIN = "ADMIN"


class VerificationStatus(Enum):
    """Farmer identity/farm verification state."""

    UNSUBMITTED = "UNSUBMITTED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TrustTier(Enum):
    """Farmer trust tier (ordered, non-overlapping)."""

    NEW = "NEW"
    ESTABLISHED = "ESTABLISHED"
    TRUSTED = "TRUSTED"
    PREMIUM = "PREMIUM"


class ListingStatus(Enum):
    AVAILABLE = "AVAILABLE"
    SOLD_OUT = "SOLD_OUT"
    WITHDRAWN = "WITHDRAWN"


class PaymentStatus(Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class FulfillmentStatus(Enum):
    """Order fulfillment state.

    AWAITING_PAYMENT -> IN_FULFILLMENT -> COMPLETED, with DISPUTED reserved.
    """

    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    IN_FULFILLMENT = "IN_FULFILLMENT"
    COMPLETED = "COMPLETED"
    DISPUTED = "DISPUTED"


class FulfillmentType(Enum):
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"


class NotificationMethod(Enum):
    SMS = "SMS"
    EMAIL = "EMAIL"
    BOTH = "BOTH"


class PriceObservationSource(Enum):
    """Provenance of a price point."""

    LISTING_CREATED = "LISTING_CREATED"
    ORDER_COMPLETED = "ORDER_COMPLETED"
