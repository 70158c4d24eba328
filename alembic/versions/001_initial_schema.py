"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

Creates the tables for the ClubSwap booking core:
- Users (profile mirror and rating aggregates)
- Listings
- Bookings, with the per-listing no-overlap exclusion constraint
- Reviews
- Notifications
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # ==================== USERS ====================
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("phone_number", sa.String(20)),
        sa.Column("phone_verified", sa.Boolean, server_default=sa.false()),
        sa.Column("first_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("avatar_url", sa.Text),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("overall_rating", sa.Numeric(3, 2), server_default="0.00"),
        sa.Column("total_reviews", sa.Integer, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== LISTINGS ====================
    op.create_table(
        "listings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("title", sa.String(60), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("club_type", sa.String(20), nullable=False),
        sa.Column("brand", sa.String(100), nullable=False),
        sa.Column("handedness", sa.String(10), nullable=False),
        sa.Column("flex", sa.String(20), nullable=False),
        sa.Column("condition", sa.String(20), nullable=False),
        sa.Column("daily_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("weekly_rate", sa.Numeric(10, 2)),
        sa.Column("security_deposit", sa.Numeric(10, 2), server_default="100.00"),
        sa.Column("address", sa.Text),
        sa.Column("city", sa.String(100), nullable=False, server_default=""),
        sa.Column("neighborhood", sa.String(100)),
        sa.Column("delivery_available", sa.Boolean, server_default=sa.false()),
        sa.Column("delivery_fee", sa.Numeric(10, 2)),
        sa.Column("minimum_rental_days", sa.Integer, server_default="1"),
        sa.Column("maximum_rental_days", sa.Integer),
        sa.Column("advance_notice_days", sa.Integer, server_default="1"),
        sa.Column("booking_mode", sa.String(10), server_default="request"),
        sa.Column("cancellation_policy", sa.String(20), server_default="moderate"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("is_draft", sa.Boolean, server_default=sa.false()),
        sa.Column("view_count", sa.Integer, server_default="0"),
        sa.Column("booking_count", sa.Integer, server_default="0"),
        sa.Column("average_rating", sa.Numeric(3, 2), server_default="0.00"),
        sa.Column("total_reviews", sa.Integer, server_default="0"),
        sa.Column("last_booked_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("listing_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("listings.id"), nullable=False, index=True),
        sa.Column("renter_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("start_date", sa.Date, nullable=False, index=True),
        sa.Column("end_date", sa.Date, nullable=False, index=True),
        sa.Column("rental_days", sa.Integer, nullable=False),
        sa.Column("daily_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_rental_fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("service_fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("security_deposit", sa.Numeric(10, 2), nullable=False),
        sa.Column("delivery_fee", sa.Numeric(10, 2), server_default="0.00"),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("platform_fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("owner_earnings", sa.Numeric(10, 2), nullable=False),
        sa.Column("stripe_payment_intent_id", sa.String(255)),
        sa.Column("stripe_deposit_hold_id", sa.String(255)),
        sa.Column("stripe_refund_id", sa.String(255)),
        sa.Column("payment_released", sa.Boolean, server_default=sa.false()),
        sa.Column("deposit_released", sa.Boolean, server_default=sa.false()),
        sa.Column("deposit_captured", sa.Boolean, server_default=sa.false()),
        sa.Column("deposit_captured_amount", sa.Numeric(10, 2), server_default="0.00"),
        sa.Column("deposit_release_date", sa.DateTime(timezone=True)),
        sa.Column("status", sa.String(20), server_default="pending", index=True),
        sa.Column("pickup_method", sa.String(20), nullable=False, server_default="owner_location"),
        sa.Column("pickup_address", sa.Text),
        sa.Column("delivery_address", sa.Text),
        sa.Column("renter_message", sa.Text),
        sa.Column("owner_decline_reason", sa.Text),
        sa.Column("cancelled_by", sa.String(10)),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("refund_amount", sa.Numeric(10, 2), server_default="0.00"),
        sa.Column("renter_reviewed", sa.Boolean, server_default=sa.false()),
        sa.Column("owner_reviewed", sa.Boolean, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("start_date < end_date", name="bookings_valid_date_range"),
    )

    # Two confirmed/in-progress bookings of one listing can never share a day
    op.execute(
        """
        ALTER TABLE bookings ADD CONSTRAINT bookings_no_overlap_per_listing
        EXCLUDE USING gist (
            listing_id WITH =,
            daterange(start_date, end_date, '[]') WITH &&
        ) WHERE (status IN ('confirmed', 'in_progress'))
        """
    )

    # ==================== REVIEWS ====================
    op.create_table(
        "reviews",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id"), nullable=False, index=True),
        sa.Column("listing_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("listings.id"), nullable=False, index=True),
        sa.Column("reviewer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reviewee_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("review_type", sa.String(10), nullable=False),
        sa.Column("overall_rating", sa.Integer, nullable=False),
        sa.Column("communication_rating", sa.Integer),
        sa.Column("equipment_quality_rating", sa.Integer),
        sa.Column("cleanliness_rating", sa.Integer),
        sa.Column("accuracy_rating", sa.Integer),
        sa.Column("value_rating", sa.Integer),
        sa.Column("respect_rating", sa.Integer),
        sa.Column("timeliness_rating", sa.Integer),
        sa.Column("condition_on_return_rating", sa.Integer),
        sa.Column("review_text", sa.Text),
        sa.Column("private_feedback", sa.Text),
        sa.Column("owner_response", sa.Text),
        sa.Column("response_created_at", sa.DateTime(timezone=True)),
        sa.Column("response_locked_at", sa.DateTime(timezone=True)),
        sa.Column("is_public", sa.Boolean, server_default=sa.true()),
        sa.Column("is_flagged", sa.Boolean, server_default=sa.false()),
        sa.Column("flag_reason", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("published_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("booking_id", "reviewer_id", "review_type", name="reviews_one_per_booking_reviewer_type"),
        sa.CheckConstraint("overall_rating BETWEEN 1 AND 5", name="reviews_overall_rating_range"),
    )

    # ==================== NOTIFICATIONS ====================
    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("template", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("action_url", sa.Text),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id")),
        sa.Column("is_read", sa.Boolean, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column("email_sent", sa.Boolean, server_default=sa.false()),
        sa.Column("sms_sent", sa.Boolean, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("notifications")
    op.drop_table("reviews")
    op.drop_table("bookings")
    op.drop_table("listings")
    op.drop_table("users")
