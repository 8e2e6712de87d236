"""
HelpFlow Backend: Message Generation Schemas
=============================================

What:  Request/response models for POST /api/ai/generate-message and the
       demo message listing.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class GenerateMessageRequest(BaseModel):
    """
    Body of POST /api/ai/generate-message.

    All three fields are required by MessageService; they are Optional here so
    a missing field yields the 400 MissingFields error naming it.
    """
    recipient_email: Optional[str] = Field(default=None, description="Where the email goes")
    message_topic: Optional[str] = Field(default=None, description="What the email is about")
    user_id: Optional[str] = Field(default=None, description="Owning profile id (UUID)")

    model_config = _CAMEL


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class EmailData(BaseModel):
    """Generated email content, returned on success and on partial success."""
    subject: str
    sender_name: str
    sender_company: str
    html_content: str
    plain_text_content: str

    model_config = _CAMEL


class GenerateMessageResult(BaseModel):
    """
    Outcome of one generate-and-deliver attempt.

    Partial success (content generated, delivery failed) is still
    success=True with delivered=False and status="failed".
    """
    success: bool = True
    message: str
    message_id: uuid.UUID
    status: str = Field(description="Final message status: sent or failed")
    delivered: bool
    email_data: EmailData

    model_config = _CAMEL


class DemoMessageItem(BaseModel):
    id: uuid.UUID
    recipient_email: str
    message_topic: str
    email_subject: Optional[str] = None
    sender_name: Optional[str] = None
    sender_company: Optional[str] = None
    generated_message: Optional[str] = None
    plain_text_content: Optional[str] = None
    status: str
    sent_at: Optional[datetime] = None
    created_at: datetime

    model_config = {**_CAMEL, "from_attributes": True}


class MessageListResponse(BaseModel):
    messages: List[DemoMessageItem]
    count: int
