"""PriceAlert model.

A farmer's standing instruction: notify me when {crop, county} trades at or
above a target price. last_triggered_at is the only cooldown state and is
written exclusively through the conditional claim in services.alerts.
"""

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from umoja.models.enums import NotificationMethod
from umoja.stores.postgres import Base


class PriceAlert(Base):
    """Target-price alert for a crop in a county."""

    __tablename__ = "price_alerts"
    __table_args__ = (
        Index("ix_price_alerts_crop_county_active", "crop_name", "county", "is_active"),
        Index("ix_price_alerts_farmer_active", "farmer_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    farmer_id: Mapped[int] = mapped_column(ForeignKey("users.id"))

    crop_name: Mapped[str] = mapped_column(String(50))
    county: Mapped[str] = mapped_column(String(100))
    target_price_per_unit: Mapped[float] = mapped_column()
    unit: Mapped[str] = mapped_column(String(20))

    notification_method: Mapped[NotificationMethod] = mapped_column(Enum(NotificationMethod))
    is_active: Mapped[bool] = mapped_column(default=True)

    last_triggered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # Sweep rotation only; not part of the cooldown decision
    last_checked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

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
        return f"<PriceAlert {self.id} {self.crop_name}/{self.county} >= {self.target_price_per_unit}>"
