"""Initial schema: users, events, registrations and the deletion lifecycle tables.

Revision ID: 001
Revises: None
Create Date: 2025-10-21
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    ]


def upgrade() -> None:
    # ── Standalone tables (no FKs) ─────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("birth_date", sa.Date()),
        sa.Column("address_street", sa.String(200)),
        sa.Column("address_number", sa.String(20)),
        sa.Column("address_zip", sa.String(20)),
        sa.Column("address_city", sa.String(100)),
        sa.Column("phone", sa.String(30)),
        sa.Column("whatsapp", sa.String(30)),
        sa.Column("telegram", sa.String(100)),
        sa.Column("preferred_language", sa.String(2), nullable=False),
        sa.Column("is_suspended", sa.Boolean(), nullable=False, comment="Set while a deletion is pending"),
        *_base_columns(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "deleted_users_archive",
        sa.Column("registered_on", sa.Date(), comment="Day only"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("attended_any", sa.Boolean(), nullable=False),
        sa.Column("events_attended", sa.Integer(), nullable=False),
        sa.Column("events_participated", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("preferred_language", sa.String(2)),
        sa.Column("deletion_mode", sa.String(20), nullable=False),
        *_base_columns(),
    )

    # ── Tables with FK to users ────────────────────────────────────────

    op.create_table(
        "events",
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True)),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        *_base_columns(),
    )
    op.create_index("ix_events_date", "events", ["date"])
    op.create_index("ix_events_created_by", "events", ["created_by"])

    op.create_table(
        "admins",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), comment="Admin who granted the rights"),
        *_base_columns(),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "audit_log",
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("ip_address", sa.String(64)),
        *_base_columns(),
    )
    op.create_index("ix_audit_log_actor_id", "audit_log", ["actor_id"])
    op.create_index("ix_audit_log_action", "audit_log", ["action"])

    op.create_table(
        "pending_deletions",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("deletion_date", sa.DateTime(timezone=True), nullable=False),
        *_base_columns(),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("ix_pending_deletions_deletion_date", "pending_deletions", ["deletion_date"])

    # ── Tables with FK to events ───────────────────────────────────────

    op.create_table(
        "registrations",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("registered_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("cancellation_reason", sa.String(500)),
        *_base_columns(),
        sa.UniqueConstraint("user_id", "event_id", name="uq_registrations_user_event"),
    )
    op.create_index("ix_registrations_user_id", "registrations", ["user_id"])
    op.create_index("ix_registrations_event_id", "registrations", ["event_id"])

    op.create_table(
        "reviews",
        sa.Column("event_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("moderated_at", sa.DateTime(timezone=True)),
        sa.Column("moderated_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        *_base_columns(),
    )
    op.create_index("ix_reviews_event_id", "reviews", ["event_id"])
    op.create_index("ix_reviews_user_id", "reviews", ["user_id"])


def downgrade() -> None:
    # Drop in reverse dependency order
    op.drop_table("reviews")
    op.drop_table("registrations")
    op.drop_table("pending_deletions")
    op.drop_table("audit_log")
    op.drop_table("admins")
    op.drop_table("events")
    op.drop_table("deleted_users_archive")
    op.drop_table("users")
