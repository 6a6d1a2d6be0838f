"""Order model.

One produce purchase. Created by the buyer's purchase flow in
PENDING_PAYMENT / AWAITING_PAYMENT and afterwards mutated only by the
payment callback (payment fields) and the order state machine
(fulfillment fields).
"""

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, validates

from umoja.models.enums import FulfillmentStatus, FulfillmentType, PaymentStatus
from umoja.stores.postgres import Base

REFERENCE_PREFIX = "UMJ"


def format_reference_id(sequence: int, year: int) -> str:
    """Human-readable order reference, e.g. UMJ-2026-000042."""
    return f"{REFERENCE_PREFIX}-{year}-{sequence:06d}"


class Order(Base):
    """Single produce purchase."""

    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_farmer_fulfillment", "farmer_id", "fulfillment_status"),
        Index("ix_orders_buyer_fulfillment", "buyer_id", "fulfillment_status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # External-facing reference (assigned from the sequence once the row has an id)
    reference_id: Mapped[str | None] = mapped_column(String(32), unique=True, index=True)

    # Relations
    listing_id: Mapped[int] = mapped_column(ForeignKey("listings.id"), index=True)
    farmer_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    buyer_id: Mapped[int] = mapped_column(ForeignKey("users.id"))

    # Snapshot of the listing at purchase time
    crop_name: Mapped[str] = mapped_column(String(50))
    quantity: Mapped[float] = mapped_column()
    unit: Mapped[str] = mapped_column(String(20))
    price_per_unit: Mapped[float] = mapped_column()
    total_amount: Mapped[float] = mapped_column()  # KES, quantity x price_per_unit

    fulfillment_type: Mapped[FulfillmentType] = mapped_column(Enum(FulfillmentType))
    buyer_phone: Mapped[str] = mapped_column(String(20))

    # Payment
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus),
        default=PaymentStatus.PENDING_PAYMENT,
        index=True,
    )
    checkout_request_id: Mapped[str | None] = mapped_column(String(100), index=True)
    payment_transaction_id: Mapped[str | None] = mapped_column(String(100), unique=True)

    # Fulfillment
    fulfillment_status: Mapped[FulfillmentStatus] = mapped_column(
        Enum(FulfillmentStatus),
        default=FulfillmentStatus.AWAITING_PAYMENT,
    )

    # Role-stamped timestamps
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    confirmed_by_farmer_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    received_by_buyer_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Dispute metadata (NULL ruling = unresolved, counted against the farmer)
    dispute_flagged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    dispute_reason: Mapped[str | None] = mapped_column(Text)
    dispute_ruled_against_farmer: Mapped[bool | None] = mapped_column()

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    @validates("quantity", "price_per_unit", "total_amount")
    def _freeze_amounts(self, key: str, value: float) -> float:
        current = getattr(self, key)
        if current is not None and current != value:
            raise ValueError(f"Order.{key} is immutable once set")
        return value

    def __repr__(self) -> str:
        return f"<Order {self.reference_id} {self.fulfillment_status.value}>"
