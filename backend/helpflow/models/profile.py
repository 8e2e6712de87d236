"""
HelpFlow Backend: Profile SQLAlchemy Model
===========================================

What:  ORM model for the `profiles` table, one row per identity-provider account.
Who:   Written by the identity webhook (create/update/delete), the checkout
       service (customer id) and the billing webhook (subscription state).

Table Design:
    - clerk_user_id: external identity id; unique, immutable, the webhook key
    - subscription_status / subscription_plan: always written as a pair, the
      plan derived from the status by status_rules.plan_for()
    - stripe_customer_id: set once, by the first successful checkout
    - demo_messages: owned rows, deleted together with the profile

Generic column types (Uuid, DateTime) keep the model usable on SQLite in tests;
the PostgreSQL-specific server defaults live in the Alembic migration.
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from helpflow.database import Base
from helpflow.models.status import SubscriptionPlan, SubscriptionStatus

if TYPE_CHECKING:
    from helpflow.models.demo_message import DemoMessage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(Base):
    """
    Internal mirror of an identity account plus its billing linkage.

    Lifecycle:
        1. Created on identity `user.created` (inactive / free)
        2. Email updated on `user.updated`
        3. Subscription fields updated by billing lifecycle events
        4. Deleted on `user.deleted`, cascading to its demo messages
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    clerk_user_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
        comment="Identity-provider user id (immutable)",
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)

    subscription_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=SubscriptionStatus.INACTIVE.value,
        comment="inactive, active, past_due, cancelled",
    )

    # Derived from subscription_status on every write; never trusted on its own
    subscription_plan: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=SubscriptionPlan.FREE.value,
        comment="free, demo",
    )

    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    demo_messages: Mapped[List["DemoMessage"]] = relationship(
        back_populates="profile",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<Profile(id={self.id}, clerk_user_id='{self.clerk_user_id}', "
            f"status='{self.subscription_status}', plan='{self.subscription_plan}')>"
        )
