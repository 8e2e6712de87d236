"""
HelpFlow Backend: Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for every failure the status lifecycle
       distinguishes.
How:   Each exception carries a user-safe message and an optional context dict.
       Global exception handlers (registered in main.py) turn them into the
       JSON error format with the matching HTTP status.
Who:   Raised by services; caught by global handlers or by the services that
       deliberately absorb them (delivery failures, billing webhook updates).

Exception Hierarchy:
    HelpFlowError (base)
    ├── ValidationError                 → 400 (client can fix)
    │   ├── MissingFieldsError          → 400 (required request fields absent)
    │   ├── MissingPrimaryEmailError    → 400 (identity event without resolvable email)
    │   └── MalformedPayloadError       → 400 (verified body with a bad envelope)
    ├── InvalidSignatureError           → 400 (webhook signature did not verify)
    ├── NotFoundError                   → 404
    ├── PersistenceError                → 500 (database failure, generic message)
    ├── IllegalStatusTransitionError    → 500 (programming error, never written)
    ├── GenerationFailedError           → 503 (LLM produced nothing usable)
    ├── DeliveryFailedError             → caught; reported as partial success
    ├── BillingServiceError             → 502
    │   ├── CheckoutCreationFailedError
    │   └── PortalCreationFailedError
    └── ServiceNotConfiguredError       → 503 (integration secret missing)
"""

from typing import Any, Dict, Iterable, Optional


class HelpFlowError(Exception):
    """
    Base exception for all HelpFlow application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(HelpFlowError):
    """
    Raised when client input fails validation.

    HTTP: 400 Bad Request. Schema-level problems are still reported by FastAPI
    as 422; this class covers business rules checked inside services.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class MissingFieldsError(ValidationError):
    """
    One or more required request fields are absent or blank.

    Raised before any side effect: no row is inserted and no external API is
    called.
    """

    def __init__(self, fields: Iterable[str], context: Optional[Dict[str, Any]] = None):
        self.fields = list(fields)
        ctx = context or {}
        ctx["missing_fields"] = self.fields
        super().__init__(
            message=f"Missing required fields: {', '.join(self.fields)}",
            context=ctx,
        )


class MissingPrimaryEmailError(ValidationError):
    """An identity `user.created` event whose primary email id matches no address."""

    def __init__(self, clerk_user_id: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["clerk_user_id"] = clerk_user_id
        super().__init__(
            message="No primary email address found for user",
            field="primary_email_address_id",
            context=ctx,
        )


class MalformedPayloadError(ValidationError):
    """The signature verified but the body is not a usable event envelope."""

    def __init__(
        self,
        message: str = "Webhook payload is malformed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidSignatureError(HelpFlowError):
    """
    Raised when a webhook signature does not verify against the shared secret.

    HTTP: 400. No state is changed. Verification is the only defense against
    forged identity or billing state changes.
    """

    def __init__(self, source: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["source"] = source
        super().__init__(message="Webhook signature verification failed", context=ctx)
        self.source = source


class NotFoundError(HelpFlowError):
    """Raised when a requested resource does not exist (HTTP 404)."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class PersistenceError(HelpFlowError):
    """
    Raised when a database operation fails.

    The client always receives a generic message; the failing operation and
    the driver error type are kept in `context` for the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class IllegalStatusTransitionError(HelpFlowError):
    """A message status change outside the allowed transition table."""

    def __init__(self, current: str, target: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx.update({"current": current, "target": target})
        super().__init__(
            message=f"Illegal message status transition {current!r} -> {target!r}",
            context=ctx,
        )
        self.current = current
        self.target = target


class GenerationFailedError(HelpFlowError):
    """
    The LLM call failed, or returned output that is missing or unparsable.

    HTTP: 503. By the time this reaches the handler, the message row has already
    been moved to `failed`.
    """

    def __init__(
        self,
        message: str = "Failed to generate message",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DeliveryFailedError(HelpFlowError):
    """
    The downstream delivery webhook rejected the payload or was unreachable.

    Never reaches a global handler: the generation service catches it, marks
    the row `failed` and reports a partial success since content exists.
    """

    def __init__(
        self,
        message: str = "Message generated but email sending failed",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class BillingServiceError(HelpFlowError):
    """Base for failures of calls made to the billing platform (HTTP 502)."""


class CheckoutCreationFailedError(BillingServiceError):
    """Customer lookup/creation or checkout session creation failed."""

    def __init__(
        self,
        message: str = "Failed to create checkout session",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PortalCreationFailedError(BillingServiceError):
    """Billing portal session creation failed."""

    def __init__(
        self,
        message: str = "Failed to create customer portal session",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ServiceNotConfiguredError(HelpFlowError):
    """An integration secret required by this request is not configured (HTTP 503)."""

    def __init__(self, service: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["service"] = service
        super().__init__(
            message=f"The {service} integration is not configured",
            context=ctx,
        )
        self.service = service
