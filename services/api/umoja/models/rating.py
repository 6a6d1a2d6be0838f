"""Rating model.

Exactly one rating per order (unique order_id), authored by the order's buyer.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from umoja.stores.postgres import Base


class Rating(Base):
    """Buyer's 1-5 rating of a completed order."""

    __tablename__ = "ratings"
    __table_args__ = (CheckConstraint("score >= 1 AND score <= 5", name="ck_ratings_score_range"),)

    id: Mapped[int] = mapped_column(primary_key=True)

    # Uniqueness here is what closes the double-submit race
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), unique=True)
    farmer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    buyer_id: Mapped[int] = mapped_column(ForeignKey("users.id"))

    score: Mapped[int] = mapped_column()
    comment: Mapped[str | None] = mapped_column(String(500))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Rating order={self.order_id} score={self.score}>"
