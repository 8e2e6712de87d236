"""
HelpFlow Backend: Status Rules
===============================

What:  The shared rules behind every status field the service writes.
How:   Pure functions over the enums in models/status.py; no I/O.
Who:   Billing webhook (plan derivation, native status mapping) and
       MessageService (message transitions).

Rules:
    plan_for(status)            active → demo, everything else → free
    map_billing_status(native)  Stripe subscription status → SubscriptionStatus
    advance_message_status()    moves a DemoMessage along ALLOWED_TRANSITIONS
                                or raises IllegalStatusTransitionError
"""

from typing import Dict, FrozenSet, Optional, Union

from helpflow.exceptions import IllegalStatusTransitionError
from helpflow.models.demo_message import DemoMessage
from helpflow.models.status import MessageStatus, SubscriptionPlan, SubscriptionStatus


# ── Subscription ──────────────────────────────────────────────────────────

def plan_for(status: Union[SubscriptionStatus, str]) -> SubscriptionPlan:
    """Derives the plan from a subscription status. Called on every status write."""
    if SubscriptionStatus(status) is SubscriptionStatus.ACTIVE:
        return SubscriptionPlan.DEMO
    return SubscriptionPlan.FREE


_BILLING_STATUS_MAP: Dict[str, SubscriptionStatus] = {
    "active": SubscriptionStatus.ACTIVE,
    "canceled": SubscriptionStatus.CANCELLED,
    "incomplete_expired": SubscriptionStatus.CANCELLED,
    "past_due": SubscriptionStatus.PAST_DUE,
}


def map_billing_status(native_status: Optional[str]) -> SubscriptionStatus:
    """
    Maps a Stripe subscription status onto the internal vocabulary.

    `trialing`, `unpaid`, `incomplete`, `paused` and anything unknown
    all collapse to inactive.
    """
    if not native_status:
        return SubscriptionStatus.INACTIVE
    return _BILLING_STATUS_MAP.get(native_status, SubscriptionStatus.INACTIVE)


# ── Demo messages ─────────────────────────────────────────────────────────

ALLOWED_TRANSITIONS: Dict[MessageStatus, FrozenSet[MessageStatus]] = {
    MessageStatus.PENDING: frozenset({MessageStatus.GENERATED, MessageStatus.FAILED}),
    MessageStatus.GENERATED: frozenset({MessageStatus.SENT, MessageStatus.FAILED}),
    MessageStatus.SENT: frozenset(),
    MessageStatus.FAILED: frozenset(),
}


def can_transition(current: Union[MessageStatus, str], target: Union[MessageStatus, str]) -> bool:
    return MessageStatus(target) in ALLOWED_TRANSITIONS[MessageStatus(current)]


def advance_message_status(message: DemoMessage, target: MessageStatus) -> None:
    """
    Moves `message` to `target`, refusing anything outside the transition table.

    The row is left untouched when the transition is illegal.

    Raises:
        IllegalStatusTransitionError: e.g. sent → failed, or pending → sent
    """
    current = MessageStatus(message.status)
    if not can_transition(current, target):
        raise IllegalStatusTransitionError(
            current=current.value,
            target=MessageStatus(target).value,
            context={"message_id": str(message.id)},
        )
    message.status = MessageStatus(target).value
