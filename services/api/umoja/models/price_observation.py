"""PriceObservation model.

Append-only price points tagged with provenance (new listing vs completed
transaction). Input to alert evaluation and the historical price series.
"""

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from umoja.models.enums import PriceObservationSource
from umoja.stores.postgres import Base


class PriceObservation(Base):
    """Immutable price point."""

    __tablename__ = "price_observations"
    __table_args__ = (
        Index("ix_price_observations_crop_county_recorded", "crop_name", "county", "recorded_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    crop_name: Mapped[str] = mapped_column(String(50))
    county: Mapped[str] = mapped_column(String(100))
    price_per_unit: Mapped[float] = mapped_column()
    unit: Mapped[str] = mapped_column(String(20))

    source: Mapped[PriceObservationSource] = mapped_column(Enum(PriceObservationSource), index=True)

    # Provenance links
    farmer_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True)
    order_id: Mapped[int | None] = mapped_column(ForeignKey("orders.id"))
    listing_id: Mapped[int | None] = mapped_column(ForeignKey("listings.id"))

    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<PriceObservation {self.crop_name}/{self.county} {self.price_per_unit} ({self.source.value})>"
