"""Listing model.

A farmer's offer of produce at a price per unit, picked up in a county.
Orders snapshot the crop, unit and price at purchase time; the county is
read back from the listing when recording completed-transaction prices.
"""

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from umoja.models.enums import ListingStatus
from umoja.stores.postgres import Base


class Listing(Base):
    """Produce listing."""

    __tablename__ = "listings"

    id: Mapped[int] = mapped_column(primary_key=True)
    farmer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text)
    crop_name: Mapped[str] = mapped_column(String(50), index=True)

    quantity_available: Mapped[float] = mapped_column()
    unit: Mapped[str] = mapped_column(String(20))  # KG, BAG, CRATE, LITRE, PIECE
    price_per_unit: Mapped[float] = mapped_column()  # KES

    pickup_county: Mapped[str] = mapped_column(String(100), index=True)

    status: Mapped[ListingStatus] = mapped_column(
        Enum(ListingStatus),
        default=ListingStatus.AVAILABLE,
        index=True,
    )

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

    def __repr__(self) -> str:
        return f"<Listing {self.id} {self.crop_name}@{self.price_per_unit}/{self.unit}>"
