"""
Status vocabularies shared by the ORM models and the lifecycle rules.

Values are stored as plain strings (VARCHAR) so the enums double as the wire
format in API responses.
"""

import enum


class SubscriptionStatus(str, enum.Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"


class SubscriptionPlan(str, enum.Enum):
    FREE = "free"
    DEMO = "demo"


class MessageStatus(str, enum.Enum):
    """Demo message lifecycle: pending -> generated -> sent, or -> failed."""

    PENDING = "pending"
    GENERATED = "generated"
    SENT = "sent"
    FAILED = "failed"
