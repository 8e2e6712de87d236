"""
HelpFlow Backend: Message Generation Service (Business Logic Orchestrator)
===========================================================================

What:  Orchestrates validate → insert → generate → store → deliver for one
       demo message, and lists a profile's messages.
How:   Composes the LLM service, the delivery service and the database session.
Who:   Called by routes/messages.py and routes/profiles.py.
When:  Once per POST /api/ai/generate-message.

Orchestration Flow:
    ┌──────────┐   ┌──────────┐   ┌───────────┐   ┌───────────┐   ┌──────────┐
    │ Validate │──▶│ Insert   │──▶│ Generate  │──▶│ Store     │──▶│ Deliver  │
    │ fields   │   │ pending  │   │ (LLM)     │   │ generated │   │ (opt.)   │
    └──────────┘   └──────────┘   └───────────┘   └───────────┘   └──────────┘
                                        │                               │
                                        ▼                               ▼
                                  failed + 503                 sent, or failed +
                                                               partial success

Every status change is committed immediately, so a `failed` row survives the
request even when the request itself ends in an error response.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from helpflow.exceptions import (
    DeliveryFailedError,
    GenerationFailedError,
    MissingFieldsError,
    PersistenceError,
    ServiceNotConfiguredError,
    ValidationError,
)
from helpflow.models.demo_message import DemoMessage
from helpflow.models.status import MessageStatus
from helpflow.schemas.message import EmailData, GenerateMessageResult
from helpflow.services.delivery_service import DeliveryService, build_delivery_payload
from helpflow.services.llm_base import GeneratedEmail, LLMService
from helpflow.services.status_rules import advance_message_status

logger = logging.getLogger(__name__)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class MessageService:
    """
    Business logic layer for demo messages.

    Responsibilities:
        - generate(): the full generate-and-deliver workflow
        - list_messages(): newest-first listing for one profile

    Error Handling Strategy:
        Validation happens before any side effect. Database errors become
        PersistenceError. GenerationFailedError propagates after the row is
        marked failed. DeliveryFailedError never propagates: it becomes a
        partial-success result.
    """

    def __init__(self, llm: LLMService, delivery: DeliveryService):
        self.llm = llm
        self.delivery = delivery

    async def generate(
        self,
        db: AsyncSession,
        recipient_email: str,
        message_topic: str,
        user_id: str,
    ) -> GenerateMessageResult:
        """
        Generate an email about `message_topic` for `recipient_email`.

        Error Recovery:
            Fields missing      → MissingFieldsError (400), nothing written
            LLM unconfigured    → row failed, ServiceNotConfiguredError (503)
            Insert fails        → PersistenceError (500), no external call made
            Generation fails    → row failed, GenerationFailedError (503)
            Delivery fails      → row failed, partial success returned

        Raises:
            MissingFieldsError, ValidationError, ServiceNotConfiguredError,
            PersistenceError, GenerationFailedError
        """
        # ── Step 1: Validate ──────────────────────────────────────────────
        missing = [
            name
            for name, value in (
                ("recipientEmail", recipient_email),
                ("messageTopic", message_topic),
                ("userId", user_id),
            )
            if _blank(value)
        ]
        if missing:
            raise MissingFieldsError(missing)

        try:
            profile_id = uuid.UUID(str(user_id).strip())
        except ValueError:
            raise ValidationError("userId must be a profile UUID", field="userId")

        recipient_email = recipient_email.strip()
        message_topic = message_topic.strip()

        # ── Step 2: Insert pending row ────────────────────────────────────
        message = DemoMessage(
            id=uuid.uuid4(),
            user_id=profile_id,
            recipient_email=recipient_email,
            message_topic=message_topic,
            status=MessageStatus.PENDING.value,
        )
        # Why commit now: the row must exist before any external call, and the
        # request-scoped session would roll it back if the request ends in an error
        try:
            db.add(message)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to insert message record for profile %s: %s", profile_id, str(e))
            raise PersistenceError(
                message="Failed to create message record",
                context={"operation": "insert", "error_type": type(e).__name__},
            ) from e
        logger.info("Message %s created (status=pending)", message.id)

        # ── Step 3: Generate ──────────────────────────────────────────────
        # An unconfigured provider is a failed attempt: the row is kept as `failed`
        if not self.llm.is_configured():
            await self._transition(db, message, MessageStatus.FAILED)
            raise ServiceNotConfiguredError("gemini", context={"message_id": str(message.id)})

        try:
            email = await self.llm.generate_email(message_topic, recipient_email)
        except GenerationFailedError:
            await self._transition(db, message, MessageStatus.FAILED)
            raise

        # ── Step 4: Store generated content ───────────────────────────────
        await self._transition(
            db,
            message,
            MessageStatus.GENERATED,
            generated_message=email.html_content,
            email_subject=email.subject,
            sender_name=email.sender_name,
            sender_company=email.sender_company,
            plain_text_content=email.plain_text_content,
        )

        # ── Step 5: Deliver (optional) ────────────────────────────────────
        if self.delivery.is_enabled():
            payload = build_delivery_payload(message.id, recipient_email, message_topic, email)
            try:
                await self.delivery.deliver(payload)
            except DeliveryFailedError as e:
                await self._transition(db, message, MessageStatus.FAILED)
                return self._result(message, email, e.message, delivered=False)

        # ── Step 6: Mark sent ─────────────────────────────────────────────
        await self._transition(
            db,
            message,
            MessageStatus.SENT,
            sent_at=datetime.now(timezone.utc),
        )
        return self._result(message, email, "Message generated and sent successfully", delivered=True)

    async def list_messages(self, db: AsyncSession, profile_id: uuid.UUID, limit: int = 20) -> List[DemoMessage]:
        """Newest-first messages owned by `profile_id`."""
        try:
            result = await db.execute(
                select(DemoMessage)
                .where(DemoMessage.user_id == profile_id)
                .order_by(DemoMessage.created_at.desc())
                .limit(limit)
            )
        except SQLAlchemyError as e:
            logger.error("Failed to list messages for profile %s: %s", profile_id, str(e))
            raise PersistenceError(context={"operation": "list", "error_type": type(e).__name__}) from e
        return list(result.scalars().all())

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _transition(
        self,
        db: AsyncSession,
        message: DemoMessage,
        target: MessageStatus,
        **fields: Any,
    ) -> None:
        # Rollback expires `message`; reading its attributes afterwards would
        # trigger a lazy load outside the async context
        message_id = message.id
        advance_message_status(message, target)
        for name, value in fields.items():
            setattr(message, name, value)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to store status %s for message %s: %s", target.value, message_id, str(e))
            raise PersistenceError(
                context={
                    "operation": f"status:{target.value}",
                    "message_id": str(message_id),
                    "error_type": type(e).__name__,
                },
            ) from e
        logger.info("Message %s -> %s", message_id, target.value)

    @staticmethod
    def _result(
        message: DemoMessage,
        email: GeneratedEmail,
        text: str,
        delivered: bool,
    ) -> GenerateMessageResult:
        return GenerateMessageResult(
            success=True,
            message=text,
            message_id=message.id,
            status=message.status,
            delivered=delivered,
            email_data=EmailData(
                subject=email.subject,
                sender_name=email.sender_name,
                sender_company=email.sender_company,
                html_content=email.html_content,
                plain_text_content=email.plain_text_content,
            ),
        )
