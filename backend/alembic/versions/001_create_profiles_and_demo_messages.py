"""Create profiles and demo_messages tables

Revision ID: 001
Revises: None
Create Date: 2025-01-10 00:00:00.000000+00:00

What:  Initial schema: identity-mirrored profiles with billing linkage, and
       the demo messages each profile generates.
How:   PostgreSQL UUID keys with gen_random_uuid() defaults, TIMESTAMPTZ
       columns, and ON DELETE CASCADE from demo_messages to profiles.

The plan/status pairing (active ⇒ demo) is maintained by the application,
not by a CHECK constraint.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "clerk_user_id",
            sa.String(255),
            nullable=False,
            comment="Identity-provider user id (immutable)",
        ),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column(
            "subscription_status",
            sa.String(50),
            nullable=False,
            server_default=sa.text("'inactive'"),
            comment="inactive, active, past_due, cancelled",
        ),
        sa.Column(
            "subscription_plan",
            sa.String(50),
            nullable=False,
            server_default=sa.text("'free'"),
            comment="free, demo",
        ),
        sa.Column("stripe_customer_id", sa.String(255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_profiles_clerk_user_id", "profiles", ["clerk_user_id"], unique=True
    )

    op.create_table(
        "demo_messages",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("recipient_email", sa.String(320), nullable=False),
        sa.Column("message_topic", sa.Text(), nullable=False),
        sa.Column("generated_message", sa.Text(), nullable=True, comment="HTML email body"),
        sa.Column("email_subject", sa.String(500), nullable=True),
        sa.Column("sender_name", sa.String(255), nullable=True),
        sa.Column("sender_company", sa.String(255), nullable=True),
        sa.Column("plain_text_content", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.String(50),
            nullable=False,
            server_default=sa.text("'pending'"),
            comment="pending, generated, sent, failed",
        ),
        sa.Column("sent_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
    )

    # Serves the dashboard's "latest messages for this profile"
    op.create_index(
        "idx_demo_messages_user_created",
        "demo_messages",
        ["user_id", sa.text("created_at DESC")],
    )


def downgrade() -> None:
    """Drops both tables. Destructive: every profile and message is lost."""
    op.drop_index("idx_demo_messages_user_created", table_name="demo_messages")
    op.drop_table("demo_messages")
    op.drop_index("ix_profiles_clerk_user_id", table_name="profiles")
    op.drop_table("profiles")
