"""User model.

Farmers, buyers and admins share one table; the role decides which
marketplace actions a caller may take.
"""

from datetime import datetime

from sqlalchemy import DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column

from umoja.models.enums import Role, VerificationStatus
from umoja.stores.postgres import Base


class User(Base):
    """Marketplace participant."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    full_name: Mapped[str] = mapped_column(String(200))
    phone_number: Mapped[str] = mapped_column(String(20), index=True)  # E.164, e.g. +2547...
    email: Mapped[str | None] = mapped_column(String(200))

    role: Mapped[Role] = mapped_column(Enum(Role), index=True)

    # Only meaningful for farmers; feeds the verification sub-score
    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus),
        default=VerificationStatus.UNSUBMITTED,
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
        return f"<User {self.id} ({self.role.value})>"
