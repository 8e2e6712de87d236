"""
HelpFlow Backend: Billing Request/Response Schemas
==================================================

Request fields are Optional on purpose: absent values are reported by the
service as MissingFieldsError (400) naming every missing field, rather than
as FastAPI's generic 422.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CheckoutSessionRequest(BaseModel):
    user_id: Optional[str] = Field(default=None, description="Identity user id")
    email: Optional[str] = Field(default=None, description="Customer email")

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class CustomerPortalRequest(BaseModel):
    customer_id: Optional[str] = Field(default=None, description="Stripe customer id")

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class SessionUrlResponse(BaseModel):
    """Hosted Stripe page the client should redirect to."""
    url: str
