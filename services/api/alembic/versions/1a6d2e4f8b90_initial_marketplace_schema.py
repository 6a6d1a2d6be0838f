"""initial_marketplace_schema

Revision ID: 1a6d2e4f8b90
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "1a6d2e4f8b90"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


role = sa.Enum("FARMER", "BUYER", "ADMIN", name="role")
verification_status = sa.Enum("UNSUBMITTED", "PENDING", "APPROVED", "REJECTED", name="verificationstatus")
listing_status = sa.Enum("AVAILABLE", "SOLD_OUT", "WITHDRAWN", name="listingstatus")
payment_status = sa.Enum("PENDING_PAYMENT", "PAID", "FAILED", "REFUNDED", name="paymentstatus")
fulfillment_status = sa.Enum(
    "AWAITING_PAYMENT", "IN_FULFILLMENT", "COMPLETED", "DISPUTED", name="fulfillmentstatus"
)
fulfillment_type = sa.Enum("PICKUP", "DELIVERY", name="fulfillmenttype")
notification_method = sa.Enum("SMS", "EMAIL", "BOTH", name="notificationmethod")
observation_source = sa.Enum("LISTING_CREATED", "ORDER_COMPLETED", name="priceobservationsource")
trust_tier = sa.Enum("NEW", "ESTABLISHED", "TRUSTED", "PREMIUM", name="trusttier")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("phone_number", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.Column("role", role, nullable=False),
        sa.Column("verification_status", verification_status, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_phone_number"), "users", ["phone_number"], unique=False)
    op.create_index(op.f("ix_users_role"), "users", ["role"], unique=False)

    op.create_table(
        "listings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("farmer_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("crop_name", sa.String(length=50), nullable=False),
        sa.Column("quantity_available", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("price_per_unit", sa.Float(), nullable=False),
        sa.Column("pickup_county", sa.String(length=100), nullable=False),
        sa.Column("status", listing_status, nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["farmer_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_listings_farmer_id"), "listings", ["farmer_id"], unique=False)
    op.create_index(op.f("ix_listings_crop_name"), "listings", ["crop_name"], unique=False)
    op.create_index(op.f("ix_listings_pickup_county"), "listings", ["pickup_county"], unique=False)
    op.create_index(op.f("ix_listings_status"), "listings", ["status"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("reference_id", sa.String(length=32), nullable=True),
        sa.Column("listing_id", sa.Integer(), nullable=False),
        sa.Column("farmer_id", sa.Integer(), nullable=False),
        sa.Column("buyer_id", sa.Integer(), nullable=False),
        sa.Column("crop_name", sa.String(length=50), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("price_per_unit", sa.Float(), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("fulfillment_type", fulfillment_type, nullable=False),
        sa.Column("buyer_phone", sa.String(length=20), nullable=False),
        sa.Column("payment_status", payment_status, nullable=False),
        sa.Column("checkout_request_id", sa.String(length=100), nullable=True),
        sa.Column("payment_transaction_id", sa.String(length=100), nullable=True),
        sa.Column("fulfillment_status", fulfillment_status, nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_by_farmer_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_by_buyer_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dispute_flagged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dispute_reason", sa.Text(), nullable=True),
        sa.Column("dispute_ruled_against_farmer", sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"]),
        sa.ForeignKeyConstraint(["farmer_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["buyer_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("payment_transaction_id"),
    )
    op.create_index(op.f("ix_orders_reference_id"), "orders", ["reference_id"], unique=True)
    op.create_index(op.f("ix_orders_listing_id"), "orders", ["listing_id"], unique=False)
    op.create_index(op.f("ix_orders_payment_status"), "orders", ["payment_status"], unique=False)
    op.create_index(op.f("ix_orders_checkout_request_id"), "orders", ["checkout_request_id"], unique=False)
    op.create_index("ix_orders_farmer_fulfillment", "orders", ["farmer_id", "fulfillment_status"], unique=False)
    op.create_index("ix_orders_buyer_fulfillment", "orders", ["buyer_id", "fulfillment_status"], unique=False)

    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("farmer_id", sa.Integer(), nullable=False),
        sa.Column("buyer_id", sa.Integer(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("comment", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("score >= 1 AND score <= 5", name="ck_ratings_score_range"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["farmer_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["buyer_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        # One rating per order; closes the concurrent double-submit race
        sa.UniqueConstraint("order_id"),
    )
    op.create_index(op.f("ix_ratings_farmer_id"), "ratings", ["farmer_id"], unique=False)

    op.create_table(
        "trust_scores",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("farmer_id", sa.Integer(), nullable=False),
        sa.Column("verification_score", sa.Integer(), nullable=False),
        sa.Column("completed_orders", sa.Integer(), nullable=False),
        sa.Column("total_volume", sa.Float(), nullable=False),
        sa.Column("transaction_score", sa.Float(), nullable=False),
        sa.Column("average_rating", sa.Float(), nullable=False),
        sa.Column("total_ratings", sa.Integer(), nullable=False),
        sa.Column("rating_score", sa.Integer(), nullable=False),
        sa.Column("on_time_confirmation_rate", sa.Float(), nullable=False),
        sa.Column("dispute_count", sa.Integer(), nullable=False),
        sa.Column("disputes_ruled_against", sa.Integer(), nullable=False),
        sa.Column("reliability_score", sa.Float(), nullable=False),
        sa.Column("composite_score", sa.Integer(), nullable=False),
        sa.Column("tier", trust_tier, nullable=False),
        sa.Column("last_calculated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["farmer_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    # Upsert target for recalculation
    op.create_index(op.f("ix_trust_scores_farmer_id"), "trust_scores", ["farmer_id"], unique=True)
    op.create_index(op.f("ix_trust_scores_composite_score"), "trust_scores", ["composite_score"], unique=False)

    op.create_table(
        "price_alerts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("farmer_id", sa.Integer(), nullable=False),
        sa.Column("crop_name", sa.String(length=50), nullable=False),
        sa.Column("county", sa.String(length=100), nullable=False),
        sa.Column("target_price_per_unit", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("notification_method", notification_method, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_triggered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_checked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["farmer_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_price_alerts_crop_county_active", "price_alerts", ["crop_name", "county", "is_active"], unique=False
    )
    op.create_index("ix_price_alerts_farmer_active", "price_alerts", ["farmer_id", "is_active"], unique=False)

    op.create_table(
        "price_observations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("crop_name", sa.String(length=50), nullable=False),
        sa.Column("county", sa.String(length=100), nullable=False),
        sa.Column("price_per_unit", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("source", observation_source, nullable=False),
        sa.Column("farmer_id", sa.Integer(), nullable=True),
        sa.Column("order_id", sa.Integer(), nullable=True),
        sa.Column("listing_id", sa.Integer(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["farmer_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_price_observations_source"), "price_observations", ["source"], unique=False)
    op.create_index(op.f("ix_price_observations_farmer_id"), "price_observations", ["farmer_id"], unique=False)
    op.create_index(
        "ix_price_observations_crop_county_recorded",
        "price_observations",
        ["crop_name", "county", "recorded_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_table("price_observations")
    op.drop_table("price_alerts")
    op.drop_table("trust_scores")
    op.drop_table("ratings")
    op.drop_table("orders")
    op.drop_table("listings")
    op.drop_table("users")
    for enum in (
        trust_tier,
        observation_source,
        notification_method,
        fulfillment_type,
        fulfillment_status,
        payment_status,
        listing_status,
        verification_status,
        role,
    ):
        enum.drop(op.get_bind(), checkfirst=True)
