"""TrustScore model.

One row per farmer, replaced wholesale on every recalculation. Stores the
raw inputs next to each sub-score contribution so the composite can be
explained (and re-derived) from the row alone.
"""

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from umoja.models.enums import TrustTier
from umoja.stores.postgres import Base


class TrustScore(Base):
    """Composite reputation record for a farmer."""

    __tablename__ = "trust_scores"

    id: Mapped[int] = mapped_column(primary_key=True)
    farmer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, index=True)

    # Verification (max 40)
    verification_score: Mapped[int] = mapped_column(default=0)

    # Transaction (max 25)
    completed_orders: Mapped[int] = mapped_column(default=0)
    total_volume: Mapped[float] = mapped_column(default=0)
    transaction_score: Mapped[float] = mapped_column(default=0)

    # Rating (max 20)
    average_rating: Mapped[float] = mapped_column(default=0)
    total_ratings: Mapped[int] = mapped_column(default=0)
    rating_score: Mapped[int] = mapped_column(default=0)

    # Reliability (max 15)
    on_time_confirmation_rate: Mapped[float] = mapped_column(default=1)
    dispute_count: Mapped[int] = mapped_column(default=0)
    disputes_ruled_against: Mapped[int] = mapped_column(default=0)
    reliability_score: Mapped[float] = mapped_column(default=0)

    composite_score: Mapped[int] = mapped_column(default=0, index=True)  # 0-100
    tier: Mapped[TrustTier] = mapped_column(Enum(TrustTier), default=TrustTier.NEW)

    last_calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<TrustScore farmer={self.farmer_id} {self.composite_score} ({self.tier.value})>"
