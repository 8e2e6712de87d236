"""Profile read model for GET /api/profiles/{clerk_user_id}."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class ProfileResponse(BaseModel):
    id: uuid.UUID
    clerk_user_id: str
    email: str
    subscription_status: str
    subscription_plan: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "from_attributes": True}
