"""
HelpFlow Backend: Demo Message SQLAlchemy Model
================================================

What:  ORM model for `demo_messages`, one row per generate-and-deliver attempt.
Who:   Written only by MessageService; read by the profile messages endpoint.

Lifecycle (enforced by status_rules.advance_message_status):
    pending ──▶ generated ──▶ sent
       │            │
       └──▶ failed ◀┘

    The row is inserted as `pending` before any external call, so every
    attempt leaves a record even when generation fails.
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from helpflow.database import Base
from helpflow.models.status import MessageStatus

if TYPE_CHECKING:
    from helpflow.models.profile import Profile


class DemoMessage(Base):
    """An AI-composed email generated on behalf of a profile."""

    __tablename__ = "demo_messages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )

    recipient_email: Mapped[str] = mapped_column(String(320), nullable=False)
    message_topic: Mapped[str] = mapped_column(Text, nullable=False)

    # ── Generated content (NULL until the row reaches `generated`) ────────
    generated_message: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True, comment="HTML email body"
    )
    email_subject: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    sender_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sender_company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    plain_text_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=MessageStatus.PENDING.value,
        comment="pending, generated, sent, failed",
    )

    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    profile: Mapped["Profile"] = relationship(back_populates="demo_messages")

    # Serves "latest messages for this profile"
    __table_args__ = (
        Index("idx_demo_messages_user_created", "user_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<DemoMessage(id={self.id}, user_id={self.user_id}, status='{self.status}')>"
